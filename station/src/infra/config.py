from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import yaml


@dataclass
class NetworkConfig:
    host: str = "0.0.0.0"
    api_port: int = 3000


@dataclass
class SessionConfig:
    # Read once at startup; a running session never changes size.
    batch_size: int = 10

    def __post_init__(self) -> None:
        if int(self.batch_size) < 1:
            raise ValueError(f"session.batch_size must be >= 1, got {self.batch_size}")
        self.batch_size = int(self.batch_size)


@dataclass
class CorsConfig:
    allow_origins: List[str] = field(default_factory=lambda: ["*"])


@dataclass
class StationConfig:
    service_id: str = "reuse-station"
    network: NetworkConfig = field(default_factory=NetworkConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)


def _load_yaml(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}
    raw = p.read_text()
    data = yaml.safe_load(raw) if raw else {}
    return data or {}


def _known(section: Any, cls) -> Dict[str, Any]:
    if not isinstance(section, dict):
        return {}
    names = cls.__dataclass_fields__.keys()
    return {k: v for k, v in section.items() if k in names}


def load_config(path: str) -> StationConfig:
    """
    Read YAML config into a typed StationConfig with sensible defaults.
    A missing file gives the defaults; unknown keys are ignored.
    """
    data = _load_yaml(path)

    return StationConfig(
        service_id=data.get("service_id", "reuse-station"),
        network=NetworkConfig(**_known(data.get("network"), NetworkConfig)),
        session=SessionConfig(**_known(data.get("session"), SessionConfig)),
        cors=CorsConfig(**_known(data.get("cors"), CorsConfig)),
    )
