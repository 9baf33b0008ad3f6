"""
JSON-file persistence adapter.

Each collection ("users", "songs", ...) lives in its own `<name>.json` file
holding a JSON array. Writes to one collection go through a single-worker
queue so two saves never interleave on disk, while different collections
write independently. `update()` additionally holds the collection lock for a
whole load-mutate-save cycle.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator
import copy
import json
import logging
import os
import re
import shutil
import tempfile
import threading
import time

from spidermusic.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

COLLECTION_NAME = re.compile(r"[A-Za-z0-9_-]+")
DEFAULT_COLLECTIONS = (
    "users",
    "songs",
    "posts",
    "notifications",
    "playlists",
    "artists",
    "genres",
)


class StoreError(Exception):
    """Base exception for the document store."""


class InvalidCollectionError(StoreError, ValueError):
    """Raised when a collection name is not a plain file stem."""


class CorruptStoreError(StoreError):
    """Raised in strict mode when a collection file does not hold valid JSON."""

    def __init__(self, name: str, path: Path, cause: Exception):
        super().__init__(f"Collection {name!r} at {path} is not valid JSON: {cause}")
        self.name = name
        self.path = path


class StoreWriteError(StoreError):
    """Raised when a collection could not be written to disk."""

    def __init__(self, name: str, cause: Exception):
        super().__init__(f"Failed to write collection {name!r}: {cause}")
        self.name = name


def validate_collection_name(name: str) -> str:
    if not isinstance(name, str) or not COLLECTION_NAME.fullmatch(name):
        raise InvalidCollectionError(f"Invalid collection name: {name!r}")
    return name


def _dump(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, indent=2)


class JsonFileBackend:
    """Reads and writes one JSON file per collection under `data_dir`."""

    def __init__(self, data_dir: Path | str, *, atomic: bool = True, legacy_dir: Path | str | None = None) -> None:
        self.data_dir = Path(data_dir)
        self.atomic = atomic
        self.legacy_dir = Path(legacy_dir) if legacy_dir else None
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{validate_collection_name(name)}.json"

    def exists(self, name: str) -> bool:
        return self.path_for(name).exists()

    def read(self, name: str) -> str:
        return self.path_for(name).read_text(encoding="utf-8")

    def write(self, name: str, text: str) -> None:
        path = self.path_for(name)
        if not self.atomic:
            path.write_text(text, encoding="utf-8")
            return
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=self.data_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_name, path)
        except OSError:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def quarantine(self, name: str) -> Path:
        """Copy an unreadable file aside before it gets overwritten."""
        path = self.path_for(name)
        backup = path.with_name(f"{path.name}.corrupt-{int(time.time())}")
        shutil.copyfile(path, backup)
        return backup

    def import_legacy(self, name: str) -> bool:
        """Copy `<legacy_dir>/<name>.json` into the data dir, once."""
        if not self.legacy_dir:
            return False
        legacy = self.legacy_dir / f"{validate_collection_name(name)}.json"
        if not legacy.is_file():
            return False
        shutil.copyfile(legacy, self.path_for(name))
        return True


class DocumentStore:
    """In-memory collections backed by a persistence backend."""

    def __init__(self, backend: JsonFileBackend, *, strict: bool = False) -> None:
        self.backend = backend
        self.strict = strict
        self._cache: dict[str, Any] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._queues: dict[str, ThreadPoolExecutor] = {}
        self._pending: dict[str, Future] = {}
        self._registry_lock = threading.Lock()
        self._closed = False

    # -------------------------- internals --------------------------
    def _lock(self, name: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.RLock()
            return lock

    def _queue(self, name: str) -> ThreadPoolExecutor:
        with self._registry_lock:
            if self._closed:
                raise StoreError("Document store is closed")
            queue = self._queues.get(name)
            if queue is None:
                queue = self._queues[name] = ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix=f"store-{name}"
                )
            return queue

    def _write(self, name: str, payload: str) -> None:
        try:
            self.backend.write(name, payload)
        except OSError as exc:
            logger.error("Write of collection %s failed: %s", name, exc)
            raise StoreWriteError(name, exc) from exc

    def _read(self, name: str, default: Any) -> Any:
        if not self.backend.exists(name):
            data = copy.deepcopy(default)
            self._write(name, _dump(data))
            logger.info("Created collection %s with its default content", name)
            return data
        try:
            return json.loads(self.backend.read(name))
        except ValueError as exc:
            path = self.backend.path_for(name)
            if self.strict:
                raise CorruptStoreError(name, path, exc) from exc
            backup = self.backend.quarantine(name)
            logger.warning(
                "Collection %s is not valid JSON (%s); copy kept at %s, using the default",
                name,
                exc,
                backup,
            )
            return copy.deepcopy(default)

    # -------------------------- public API --------------------------
    def load(self, name: str, default: Any = None) -> Any:
        """
        Return the live in-memory collection, reading it from disk on first use.

        A missing file is created with `default`. An unreadable file yields
        `default` (strict stores raise CorruptStoreError instead).
        """
        validate_collection_name(name)
        if default is None:
            default = []
        with self._lock(name):
            if name not in self._cache:
                self._cache[name] = self._read(name, default)
            return self._cache[name]

    def save(self, name: str, data: Any) -> Future:
        """
        Queue a full rewrite of `name` behind any in-flight write to it.

        The payload is serialized now, so later mutations of `data` do not
        leak into this write. The returned future raises StoreWriteError on
        failure.
        """
        validate_collection_name(name)
        payload = _dump(data)
        with self._lock(name):
            queue = self._queue(name)
            self._cache[name] = data
            future = queue.submit(self._write, name, payload)
            with self._registry_lock:
                self._pending[name] = future
        return future

    @contextmanager
    def update(self, name: str, default: Any = None) -> Iterator[Any]:
        """
        Lock `name` for a read-modify-write cycle.

        Yields a working copy; on a clean exit it replaces the collection and
        waits for the write. If the block raises or leaves the copy unchanged,
        nothing is written.
        """
        with self._lock(name):
            current = self.load(name, default)
            working = copy.deepcopy(current)
            yield working
            if working == current:
                return
            try:
                self.save(name, working).result()
            except StoreWriteError:
                self._cache[name] = current
                raise

    def ensure(self, name: str, default: Any = None) -> bool:
        """Make sure the file for `name` exists; returns True when it was created."""
        validate_collection_name(name)
        with self._lock(name):
            # a queued save may be about to create the file
            self.flush(name)
            if self.backend.exists(name):
                return False
            if self._queue(name).submit(self.backend.import_legacy, name).result():
                logger.info("Imported legacy collection file for %s", name)
                return True
            payload = _dump([] if default is None else default)
            self._queue(name).submit(self._write, name, payload).result()
            logger.info("Created empty collection %s", name)
            return True

    def flush(self, name: str | None = None) -> None:
        """Block until queued writes (for one or all collections) are done."""
        with self._registry_lock:
            if name is None:
                futures = list(self._pending.values())
            else:
                futures = [self._pending[name]] if name in self._pending else []
        if futures:
            wait(futures)

    def close(self) -> None:
        self.flush()
        with self._registry_lock:
            self._closed = True
            queues = list(self._queues.values())
            self._queues.clear()
        for queue in queues:
            queue.shutdown(wait=True)

    def __enter__(self) -> "DocumentStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def bootstrap(store: DocumentStore, names: tuple[str, ...] = DEFAULT_COLLECTIONS) -> list[str]:
    """Ensure every app collection has a file; returns the ones created."""
    return [name for name in names if store.ensure(name, [])]


def create_store(settings: Settings | None = None) -> DocumentStore:
    settings = settings or get_settings()
    backend = JsonFileBackend(
        settings.data_dir,
        atomic=settings.store_atomic_writes,
        legacy_dir=settings.legacy_data_dir,
    )
    return DocumentStore(backend, strict=settings.store_strict)
