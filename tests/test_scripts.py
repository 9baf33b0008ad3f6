"""Run the maintenance scripts against a temporary data dir."""
from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path

import pytest

# Make the spidermusic package importable when running the tests locally
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from spidermusic.core import config as core_config  # noqa: E402


def _load_script(name: str):
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", ROOT / "scripts" / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("STORAGE_ROOT", str(tmp_path))
    monkeypatch.delenv("DATA_DIR", raising=False)
    core_config.get_settings.cache_clear()
    yield tmp_path / "data"
    core_config.get_settings.cache_clear()


def _read(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_add_user_then_rename(data_dir, monkeypatch, capsys):
    monkeypatch.setattr(sys, "argv", ["add_user.py", "--username", "root", "--password", "pw", "--role", "superadmin"])
    _load_script("add_user").main()
    users = _read(data_dir / "users.json")
    assert users[0]["username"] == "root"
    assert users[0]["role"] == "superadmin"

    playlists = [{"id": "p1", "owner": "root", "songs": []}]
    (data_dir / "playlists.json").write_text(json.dumps(playlists), encoding="utf-8")

    monkeypatch.setattr(sys, "argv", ["rename_user.py", "--old", "root", "--new", "admin"])
    _load_script("rename_user").main()
    assert "OK: root -> admin" in capsys.readouterr().out
    assert _read(data_dir / "users.json")[0]["username"] == "admin"
    assert _read(data_dir / "playlists.json")[0]["owner"] == "admin"
