import pytest
from fastapi.testclient import TestClient

from domain.controller import StationController
from infra.config import SessionConfig, StationConfig
from interfaces.api import create_app

from helpers import FIXED_NOW


@pytest.fixture
def config() -> StationConfig:
    return StationConfig(session=SessionConfig(batch_size=10))


@pytest.fixture
def controller(config) -> StationController:
    return StationController(config, clock=lambda: FIXED_NOW)


@pytest.fixture
def client(config, controller) -> TestClient:
    return TestClient(create_app(config=config, controller=controller))
