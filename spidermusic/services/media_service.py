"""
Media storage on the local disk.

Clients send covers, avatars and audio as base64 `data:` URLs. These helpers
decode them into files under the storage root and hand back the public URL
that gets stored on the record instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import quote
import base64
import binascii
import re
import secrets

from spidermusic.core.config import Settings, get_settings
from spidermusic.core.utils import absolute_url, now_ms

KINDS = ("images", "audio", "media")
_SAFE_EXT = re.compile(r"\.[A-Za-z0-9]+")
_MIME_EXT = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "audio/mpeg": ".mp3",
    "audio/wav": ".wav",
    "audio/ogg": ".ogg",
    "audio/mp4": ".m4a",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
}


class MediaError(Exception):
    """Raised when a data URL claims base64 content that does not decode."""


@dataclass
class DataUrl:
    mime_type: str
    payload: str


@dataclass
class SavedMedia:
    filename: str
    mime_type: str
    size: int
    url: str


def parse_data_url(value: str | None) -> Optional[DataUrl]:
    """Split `data:<mime>;base64,<payload>`; anything else returns None."""
    if not isinstance(value, str) or not value.startswith("data:"):
        return None
    meta, sep, payload = value[5:].partition(",")
    if not sep or ";base64" not in meta.lower():
        return None
    mime_type = meta.split(";")[0] or "application/octet-stream"
    return DataUrl(mime_type=mime_type, payload=payload)


def safe_ext(original_name: str | None, mime_type: str | None) -> str:
    ext = Path(original_name or "").suffix[:12]
    if ext and _SAFE_EXT.fullmatch(ext):
        return ext
    return _MIME_EXT.get(mime_type or "", "")


def kind_for(value: str | None) -> str:
    """Posts may carry videos; those go to the generic media folder."""
    return "media" if (value or "").startswith("data:video/") else "images"


class MediaStorage:
    """Writes decoded uploads to `<storage_root>/<kind>/` and builds their URLs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.dirs = {
            "images": self.settings.images_dir,
            "audio": self.settings.audio_dir,
            "media": self.settings.media_dir,
        }
        for directory in self.dirs.values():
            directory.mkdir(parents=True, exist_ok=True)

    def save_data_url(self, value: str | None, kind: str, prefix: str = "file") -> Optional[SavedMedia]:
        parsed = parse_data_url(value)
        if not parsed:
            return None
        if kind not in self.dirs:
            raise ValueError(f"Unknown media kind {kind!r}")
        try:
            raw = base64.b64decode(parsed.payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MediaError(f"Invalid base64 payload for {parsed.mime_type}") from exc
        filename = f"{now_ms()}_{prefix}_{secrets.token_hex(6)}{safe_ext('', parsed.mime_type)}"
        (self.dirs[kind] / filename).write_bytes(raw)
        url = absolute_url(f"/files/{kind}/{quote(filename)}", self.settings.public_base_url)
        return SavedMedia(filename=filename, mime_type=parsed.mime_type, size=len(raw), url=url)

    def resolve(self, value: str, kind: str, prefix: str = "file") -> str:
        """Return the stored URL for a data URL, or the value unchanged."""
        saved = self.save_data_url(value, kind, prefix)
        return saved.url if saved else value
