"""
Tests for the JSON document store: defaults, corruption, write ordering and locking.
"""
from __future__ import annotations

import json
import sys
import threading
from pathlib import Path

import pytest

# Make the spidermusic package importable when running the tests locally
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from spidermusic.repositories.json_storage import (  # noqa: E402
    CorruptStoreError,
    DocumentStore,
    InvalidCollectionError,
    JsonFileBackend,
    StoreError,
    StoreWriteError,
    bootstrap,
)


class FlakyBackend(JsonFileBackend):
    """Backend whose writes can be switched to fail."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail = False

    def write(self, name, text):
        if self.fail:
            raise OSError("disk full")
        super().write(name, text)


class GatedBackend(JsonFileBackend):
    """Backend that blocks writes of one collection until released."""

    def __init__(self, *args, gated: str, **kwargs):
        super().__init__(*args, **kwargs)
        self.gated = gated
        self.release = threading.Event()

    def write(self, name, text):
        if name == self.gated:
            self.release.wait(timeout=5)
        super().write(name, text)


@pytest.fixture()
def store(tmp_path):
    with DocumentStore(JsonFileBackend(tmp_path)) as s:
        yield s


def _on_disk(path: Path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_load_missing_file_creates_it_with_default(store, tmp_path):
    default = [{"username": "admin", "role": "superadmin"}]
    assert store.load("users", default) == default
    assert _on_disk(tmp_path / "users.json") == default


def test_load_invalid_json_returns_default_and_keeps_a_copy(tmp_path):
    (tmp_path / "songs.json").write_text("[{not json", encoding="utf-8")
    with DocumentStore(JsonFileBackend(tmp_path)) as store:
        assert store.load("songs", []) == []
    backups = list(tmp_path.glob("songs.json.corrupt-*"))
    assert len(backups) == 1
    assert backups[0].read_text(encoding="utf-8") == "[{not json"


def test_strict_store_raises_on_corrupt_file(tmp_path):
    (tmp_path / "songs.json").write_text("{", encoding="utf-8")
    with DocumentStore(JsonFileBackend(tmp_path), strict=True) as store:
        with pytest.raises(CorruptStoreError) as info:
            store.load("songs", [])
    assert info.value.name == "songs"


def test_sequential_saves_keep_the_last_payload(store, tmp_path):
    for i in range(25):
        store.save("songs", [{"id": str(i)}])
    store.flush("songs")
    assert _on_disk(tmp_path / "songs.json") == [{"id": "24"}]


def test_save_uses_the_state_at_call_time(store, tmp_path):
    songs = [{"id": "1", "likes": []}]
    future = store.save("songs", songs)
    songs[0]["likes"].append("late")
    future.result()
    assert _on_disk(tmp_path / "songs.json") == [{"id": "1", "likes": []}]


def test_concurrent_saves_never_mix_payloads(store, tmp_path):
    payload_a = [{"id": str(i), "title": "a" * 500} for i in range(200)]
    payload_b = [{"id": str(i), "title": "b" * 500} for i in range(150)]
    barrier = threading.Barrier(2)

    def writer(payload):
        barrier.wait()
        for _ in range(10):
            store.save("songs", payload)

    threads = [threading.Thread(target=writer, args=(p,)) for p in (payload_a, payload_b)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    store.flush()

    assert _on_disk(tmp_path / "songs.json") in (payload_a, payload_b)
    assert not list(tmp_path.glob(".songs.json.*.tmp"))


def test_update_serializes_read_modify_write(store, tmp_path):
    store.load("counters", [{"n": 0}])

    def bump():
        for _ in range(20):
            with store.update("counters") as counters:
                counters[0]["n"] += 1

    threads = [threading.Thread(target=bump) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.load("counters")[0]["n"] == 100
    assert _on_disk(tmp_path / "counters.json") == [{"n": 100}]


def test_update_discards_changes_when_block_raises(store, tmp_path):
    store.load("genres", [{"name": "rock"}])
    with pytest.raises(RuntimeError):
        with store.update("genres") as genres:
            genres.append({"name": "jazz"})
            raise RuntimeError("boom")
    assert store.load("genres") == [{"name": "rock"}]
    assert _on_disk(tmp_path / "genres.json") == [{"name": "rock"}]


def test_write_failure_is_reported_and_memory_rolled_back(tmp_path):
    backend = FlakyBackend(tmp_path)
    with DocumentStore(backend) as store:
        store.load("users", [])
        backend.fail = True

        with pytest.raises(StoreWriteError):
            store.save("users", [{"username": "x"}]).result()

        with pytest.raises(StoreWriteError):
            with store.update("users") as users:
                users.append({"username": "alice"})
        # a plain save already moved memory; only the failed update is rolled back
        assert store.load("users") == [{"username": "x"}]
        backend.fail = False
    assert _on_disk(tmp_path / "users.json") == []


def test_collections_write_independently(tmp_path):
    backend = GatedBackend(tmp_path, gated="songs")
    with DocumentStore(backend) as store:
        slow = store.save("songs", [{"id": "1"}])
        store.save("users", [{"username": "alice"}]).result(timeout=5)
        assert not slow.done()
        backend.release.set()
        slow.result(timeout=5)
    assert _on_disk(tmp_path / "users.json") == [{"username": "alice"}]
    assert _on_disk(tmp_path / "songs.json") == [{"id": "1"}]


@pytest.mark.parametrize("name", ["../users", "users.json", "", "a/b"])
def test_rejects_names_outside_the_data_dir(store, name):
    with pytest.raises(InvalidCollectionError):
        store.load(name, [])


def test_bootstrap_imports_legacy_files(tmp_path):
    legacy = tmp_path / "legacy"
    legacy.mkdir()
    (legacy / "songs.json").write_text('[{"id": "old"}]', encoding="utf-8")
    data_dir = tmp_path / "data"

    with DocumentStore(JsonFileBackend(data_dir, legacy_dir=legacy)) as store:
        created = bootstrap(store)
        assert "songs" in created
        assert store.load("songs") == [{"id": "old"}]
        assert bootstrap(store) == []
    assert _on_disk(data_dir / "users.json") == []


def test_non_atomic_backend_overwrites_in_place(tmp_path):
    with DocumentStore(JsonFileBackend(tmp_path, atomic=False)) as store:
        store.save("posts", [{"id": "p1"}]).result()
    assert _on_disk(tmp_path / "posts.json") == [{"id": "p1"}]


def test_save_after_close_leaves_memory_alone(tmp_path):
    store = DocumentStore(JsonFileBackend(tmp_path))
    store.save("songs", [{"id": "a"}]).result()
    store.close()

    with pytest.raises(StoreError):
        store.save("songs", [{"id": "b"}])
    assert store.load("songs") == [{"id": "a"}]
    assert _on_disk(tmp_path / "songs.json") == [{"id": "a"}]


def test_ensure_waits_for_a_queued_save(tmp_path):
    backend = GatedBackend(tmp_path, gated="songs")
    with DocumentStore(backend) as store:
        pending = store.save("songs", [{"id": "1"}])
        created = []
        worker = threading.Thread(target=lambda: created.append(store.ensure("songs", [])))
        worker.start()
        backend.release.set()
        worker.join(timeout=5)
        pending.result(timeout=5)

        assert created == [False]
    assert _on_disk(tmp_path / "songs.json") == [{"id": "1"}]
