"""Username rename and its fan-out to every denormalized reference."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from spidermusic.domain.references import USERNAME_REFERENCES, find_user, replace_username, username_taken
from spidermusic.repositories.json_storage import DocumentStore, StoreError
from spidermusic.services.errors import UserNotFoundError, UsernameTakenError, ValidationError

logger = logging.getLogger(__name__)


class RenamePropagationError(StoreError):
    """Raised when a rename stopped after some collections were already rewritten."""

    def __init__(self, old: str, new: str, written: list[str], failed: str, cause: Exception):
        super().__init__(
            f"Rename {old!r} -> {new!r} failed on {failed!r} after writing {', '.join(written) or 'nothing'}: {cause}"
        )
        self.old = old
        self.new = new
        self.written = written
        self.failed = failed


@dataclass
class RenameResult:
    old: str
    new: str
    changes: dict[str, int] = field(default_factory=dict)


class UsernameRenameService:
    """Renames an account and rewrites playlists, posts, likes, notifications and artists."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def rename(self, old: str, new: str) -> RenameResult:
        old = (old or "").strip()
        new = (new or "").strip()
        if not new:
            raise ValidationError("Missing newUsername")
        users = self.store.load("users", [])
        if not find_user(users, old):
            raise UserNotFoundError(f"User {old!r} not found")
        if new == old:
            return RenameResult(old=old, new=new)

        result = RenameResult(old=old, new=new)
        written: list[str] = []
        for name, fields in USERNAME_REFERENCES.items():
            try:
                with self.store.update(name, []) as records:
                    # re-checked under the users lock so two renames cannot grab the same name
                    if name == "users":
                        if not find_user(records, old):
                            raise UserNotFoundError(f"User {old!r} not found")
                        if username_taken(records, new, exclude=old):
                            raise UsernameTakenError("Username already exists")
                    changed = replace_username(records, fields, old, new)
            except StoreError as exc:
                if not written:
                    raise
                logger.error("Username rename %s -> %s left partial state: %s", old, new, exc)
                raise RenamePropagationError(old, new, written, name, exc) from exc
            if changed:
                result.changes[name] = changed
                written.append(name)
        logger.info("Renamed user %s -> %s (%s)", old, new, result.changes)
        return result
