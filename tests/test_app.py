from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Make the spidermusic package importable when running the tests locally
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from spidermusic.app import create_app  # noqa: E402
from spidermusic.core import config as core_config  # noqa: E402
from spidermusic.core.rate_limiter import reset_limits  # noqa: E402


@pytest.fixture()
def app_env(tmp_path, monkeypatch):
    """Point storage at a temp dir and reset cached settings/limits."""
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path))
    monkeypatch.delenv("DATA_DIR", raising=False)
    monkeypatch.delenv("STORAGE_TOKEN", raising=False)
    core_config.get_settings.cache_clear()
    reset_limits()
    yield tmp_path
    core_config.get_settings.cache_clear()
    reset_limits()


@pytest.fixture()
def client(app_env):
    with TestClient(create_app()) as c:
        yield c


def test_health_and_bootstrap(client, app_env):
    res = client.get("/health")
    assert res.status_code == 200
    body = res.json()
    assert body["status"] == "ok"
    assert body["tokenRequired"] is False
    assert (app_env / "data" / "playlists.json").exists()
    assert res.headers["x-content-type-options"] == "nosniff"


def test_register_login_and_rename(client):
    res = client.post("/auth/register", json={"username": "alice", "password": "pw"})
    assert res.status_code == 200
    assert "password" not in res.json()
    assert client.post("/auth/register", json={"username": "Alice", "password": "pw"}).status_code == 409
    assert client.post("/auth/login", json={"username": "alice", "password": "bad"}).status_code == 401

    client.app.state.library_service.create_playlist("Mix", "alice")
    res = client.put("/users/alice", json={"newUsername": "alicia"})
    assert res.status_code == 200
    assert res.json()["changes"] == {"users": 1, "playlists": 1}

    assert client.post("/auth/login", json={"username": "alicia", "password": "pw"}).status_code == 200
    assert client.put("/users/ghost", json={"newUsername": "x"}).status_code == 404
    assert client.put("/users/alicia", json={}).status_code == 400


def test_rename_requires_storage_token_when_configured(app_env, monkeypatch):
    monkeypatch.setenv("STORAGE_TOKEN", "t0ken")
    core_config.get_settings.cache_clear()
    with TestClient(create_app()) as client:
        client.post("/auth/register", json={"username": "bob", "password": "pw"})
        assert client.put("/users/bob", json={"newUsername": "rob"}).status_code == 401
        res = client.put("/users/bob", json={"newUsername": "rob"}, headers={"x-storage-token": "t0ken"})
        assert res.status_code == 200


def test_login_is_rate_limited(client):
    codes = [
        client.post("/auth/login", json={"username": "x", "password": "y"}).status_code
        for _ in range(11)
    ]
    assert codes[:10] == [401] * 10
    assert codes[10] == 429
