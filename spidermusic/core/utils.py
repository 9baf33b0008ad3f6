"""
Utility helpers shared across routers/services.
"""

from __future__ import annotations

import secrets
import time
from typing import Any, Optional

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None) -> str:
    """
    Turn a relative path into an absolute URL using PUBLIC_BASE_URL.
    """
    settings = get_settings()
    base_url = (base or settings.public_base_url).rstrip("/")
    if not path:
        return base_url + "/"
    if path.startswith("http://") or path.startswith("https://"):
        return path
    if not path.startswith("/"):
        path = "/" + path
    return base_url + path


def normalize_id(value: Any) -> str:
    return "" if value is None else str(value)


def record_id(record: dict) -> str:
    """Records written by older prototypes carry `_id` instead of `id`."""
    return normalize_id(record.get("id") or record.get("_id"))


def new_id() -> str:
    return secrets.token_hex(8)


def now_ms() -> int:
    return int(time.time() * 1000)
