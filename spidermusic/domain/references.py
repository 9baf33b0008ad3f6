"""Where usernames are denormalized across collections, and how to rewrite them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class ReferenceFields:
    scalars: tuple[str, ...] = ()
    lists: tuple[str, ...] = ()
    # matched ignoring case, for fields that are case-insensitive keys
    casefold_scalars: tuple[str, ...] = ()


# Order matters: users first so a failed fan-out never leaves the account
# itself under the old name while its references moved.
USERNAME_REFERENCES: dict[str, ReferenceFields] = {
    "users": ReferenceFields(scalars=("username",), lists=("following", "followers")),
    "songs": ReferenceFields(lists=("likes",)),
    "posts": ReferenceFields(scalars=("author",), lists=("likes",)),
    "playlists": ReferenceFields(scalars=("owner",)),
    "notifications": ReferenceFields(scalars=("targetUser", "user", "sender")),
    "artists": ReferenceFields(casefold_scalars=("name",)),
}


def replace_username(records: Iterable, fields: ReferenceFields, old: str, new: str) -> int:
    """Rewrite `old` to `new` in place; returns how many records changed."""
    changed = 0
    for record in records:
        if not isinstance(record, dict):
            continue
        touched = False
        for field in fields.scalars:
            if record.get(field) == old:
                record[field] = new
                touched = True
        for field in fields.casefold_scalars:
            value = record.get(field)
            if isinstance(value, str) and value.lower() == old.lower():
                record[field] = new
                touched = True
        for field in fields.lists:
            values = record.get(field)
            if isinstance(values, list) and old in values:
                record[field] = [new if value == old else value for value in values]
                touched = True
        if touched:
            changed += 1
    return changed


def find_user(users: Iterable, username: str | None) -> Optional[dict]:
    if not username:
        return None
    for user in users:
        if isinstance(user, dict) and user.get("username") == username:
            return user
    return None


def username_taken(users: Iterable, username: str, *, exclude: str | None = None) -> bool:
    """Case-insensitive clash check, ignoring the account named `exclude`."""
    wanted = (username or "").lower()
    for user in users:
        if not isinstance(user, dict):
            continue
        current = user.get("username") or ""
        if current == exclude:
            continue
        if current.lower() == wanted:
            return True
    return False
