"""Shared-secret guard for write endpoints exposed beyond localhost."""
from __future__ import annotations

import secrets

from fastapi import HTTPException, Request

from spidermusic.core.config import get_settings

STORAGE_TOKEN_HEADER = "x-storage-token"


def require_storage_token(request: Request) -> None:
    """No-op when STORAGE_TOKEN is unset; otherwise the header must match it."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    expected = settings.storage_token
    if not expected:
        return
    provided = (request.headers.get(STORAGE_TOKEN_HEADER) or "").strip()
    if not provided or not secrets.compare_digest(provided, expected):
        raise HTTPException(401, "Unauthorized")
