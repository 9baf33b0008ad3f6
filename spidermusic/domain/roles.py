"""Account roles and the checks built on them."""
from __future__ import annotations

from typing import Optional

USER = "user"
ARTIST = "artist"
ADMIN = "admin"
SUPERADMIN = "superadmin"
ROLES = (USER, ARTIST, ADMIN, SUPERADMIN)


def role_of(user: Optional[dict]) -> str:
    if not user:
        return ""
    return user.get("role") or USER


def is_valid_role(value: str | None) -> bool:
    return value in ROLES


def is_admin(user: Optional[dict]) -> bool:
    return role_of(user) in (ADMIN, SUPERADMIN)


def is_superadmin(user: Optional[dict]) -> bool:
    return role_of(user) == SUPERADMIN
