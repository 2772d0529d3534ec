from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from webhook_receiver.core.config.config import Settings, get_settings
from webhook_receiver.main import app


@pytest.fixture
def settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Settings:
    # Response paths are relative to the working directory
    monkeypatch.chdir(tmp_path)
    return Settings(uploads_root=tmp_path / "uploads")


@pytest.fixture
def client(settings: Settings):
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
