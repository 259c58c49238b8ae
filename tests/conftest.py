"""Shared test fixtures and configuration for upload receiver tests."""
import pytest
from fastapi.testclient import TestClient

from upload_receiver.config import AppConfig
from upload_receiver.main import create_app

# Short quiet period so debounce tests stay fast
TEST_DEBOUNCE_MS = 20


@pytest.fixture
def uploads_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def config(uploads_dir):
    """Config with the filesystem watcher disabled and a short debounce."""
    return AppConfig(
        storage={"uploads_dir": uploads_dir},
        events={"watch": False, "debounce_ms": TEST_DEBOUNCE_MS, "heartbeat_seconds": 1},
    )


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def api_client(app):
    """Provide a TestClient with the application lifespan running."""
    with TestClient(app) as client:
        yield client
