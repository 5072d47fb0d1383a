import argparse
import sys
from pathlib import Path

import uvicorn

# Ensure the src package is first on sys.path so we import the local modules
SRC_DIR = Path(__file__).resolve().parent
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from infra.config import load_config, StationConfig
from interfaces.api import create_app


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Greywater reuse station backend")
    parser.add_argument(
        "--config",
        type=str,
        default="config/station.yaml",
        help="Path to YAML configuration file",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    cfg: StationConfig = load_config(args.config)

    app = create_app(config=cfg)

    uvicorn.run(
        app,
        host=cfg.network.host,
        port=cfg.network.api_port,
    )


if __name__ == "__main__":
    main()
