"""
Configuration helpers for the Spider Music backend.

Routers, services and the document store read paths and flags from the
Settings object below instead of fetching os.environ directly.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    storage_root: Path
    data_dir: Path
    legacy_data_dir: Path | None
    store_strict: bool
    store_atomic_writes: bool
    storage_token: str
    log_level: str

    @property
    def images_dir(self) -> Path:
        return self.storage_root / "images"

    @property
    def audio_dir(self) -> Path:
        return self.storage_root / "audio"

    @property
    def media_dir(self) -> Path:
        return self.storage_root / "media"


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _bool(value: str | None, default: bool = False) -> bool:
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}

    def _path(value: str | None) -> Path | None:
        value = (value or "").strip()
        return Path(value).expanduser().resolve() if value else None

    storage_root = _path(os.getenv("STORAGE_ROOT")) or (Path.cwd() / "storage").resolve()
    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:5050").rstrip("/"),
        storage_root=storage_root,
        data_dir=_path(os.getenv("DATA_DIR")) or storage_root / "data",
        legacy_data_dir=_path(os.getenv("LEGACY_DATA_DIR")),
        store_strict=_bool(os.getenv("STORE_STRICT"), False),
        store_atomic_writes=_bool(os.getenv("STORE_ATOMIC_WRITES"), True),
        storage_token=(os.getenv("STORAGE_TOKEN") or "").strip(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
