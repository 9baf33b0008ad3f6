"""
Account use cases: registration, login, profile, follows, roles and album likes.
"""

from __future__ import annotations

from typing import Optional
import logging

from spidermusic.core.security import hash_password, is_current_hash, verify_password
from spidermusic.core.utils import new_id
from spidermusic.domain.references import find_user, username_taken
from spidermusic.domain.roles import USER, SUPERADMIN, is_admin, is_superadmin, is_valid_role
from spidermusic.repositories.json_storage import DocumentStore
from spidermusic.services.errors import (
    InvalidCredentialsError,
    PermissionDeniedError,
    RegistrationError,
    UserNotFoundError,
    UsernameTakenError,
    ValidationError,
)
from spidermusic.services.media_service import MediaStorage

logger = logging.getLogger(__name__)

USERS = "users"


def public_view(user: Optional[dict]) -> Optional[dict]:
    """Copy of a user record without the password hash."""
    if user is None:
        return None
    data = {key: value for key, value in user.items() if key != "password"}
    data["id"] = user.get("id") or user.get("_id") or user.get("username")
    data["role"] = user.get("role") or USER
    for key in ("following", "followers", "likedAlbums"):
        data[key] = list(user.get(key) or [])
    return data


class UserService:
    """Handles registration, login and the per-user lists kept on the record."""

    def __init__(self, store: DocumentStore, media: MediaStorage | None = None) -> None:
        self.store = store
        self.media = media

    def _require(self, users: list, username: str) -> dict:
        user = find_user(users, username)
        if not user:
            raise UserNotFoundError(f"User {username!r} not found")
        return user

    # -------------------------------------- lookups --------------------------------------
    def list_users(self) -> list[dict]:
        return [public_view(u) for u in self.store.load(USERS, []) if isinstance(u, dict)]

    def get_profile(self, username: str) -> dict:
        return public_view(self._require(self.store.load(USERS, []), username))

    # -------------------------------------- registration / login --------------------------------------
    def register(self, username: str, password: str) -> dict:
        username = (username or "").strip()
        if not username or not password:
            raise RegistrationError("Missing credentials")
        with self.store.update(USERS, []) as users:
            if username_taken(users, username):
                raise UsernameTakenError("User exists")
            user = {
                "id": new_id(),
                "username": username,
                "password": hash_password(password),
                "role": USER,
                "avatar": "",
                "banner": "",
                "following": [],
                "followers": [],
                "likedAlbums": [],
            }
            users.append(user)
        logger.info("Registered user %s", username)
        return public_view(user)

    def login(self, username: str, password: str) -> dict:
        username = (username or "").strip()
        if not username or not password:
            raise InvalidCredentialsError("Missing credentials")
        user = find_user(self.store.load(USERS, []), username)
        if not user or not verify_password(password, user.get("password")):
            raise InvalidCredentialsError("Invalid credentials")
        if not is_current_hash(user.get("password")):
            with self.store.update(USERS, []) as users:
                stored = find_user(users, username)
                if stored:
                    stored["password"] = hash_password(password)
            logger.info("Upgraded legacy password hash for %s", username)
        return public_view(user)

    # -------------------------------------- profile --------------------------------------
    def update_profile(self, username: str, *, avatar: str | None = None, banner: str | None = None) -> dict:
        if not username:
            raise ValidationError("Missing username")
        if self.media:
            if isinstance(avatar, str):
                avatar = self.media.resolve(avatar, "images", "avatar")
            if isinstance(banner, str):
                banner = self.media.resolve(banner, "images", "banner")
        with self.store.update(USERS, []) as users:
            user = self._require(users, username)
            if isinstance(avatar, str):
                user["avatar"] = avatar
            if isinstance(banner, str):
                user["banner"] = banner
        return public_view(user)

    # -------------------------------------- follows --------------------------------------
    def follow(self, follower: str, following: str) -> dict:
        if not follower or not following:
            raise ValidationError("Missing follower/following")
        if follower == following:
            raise ValidationError("Users cannot follow themselves")
        with self.store.update(USERS, []) as users:
            user = self._require(users, follower)
            target = self._require(users, following)
            user["following"] = list(user.get("following") or [])
            target["followers"] = list(target.get("followers") or [])
            if following not in user["following"]:
                user["following"].append(following)
            if follower not in target["followers"]:
                target["followers"].append(follower)
        return public_view(user)

    def unfollow(self, follower: str, following: str) -> dict:
        if not follower or not following:
            raise ValidationError("Missing follower/following")
        with self.store.update(USERS, []) as users:
            user = self._require(users, follower)
            target = self._require(users, following)
            user["following"] = [u for u in (user.get("following") or []) if u != following]
            target["followers"] = [u for u in (target.get("followers") or []) if u != follower]
        return public_view(user)

    # -------------------------------------- roles --------------------------------------
    def change_role(self, requester: str, target_user: str, new_role: str) -> dict:
        if not requester or not target_user or not new_role:
            raise ValidationError("Missing fields")
        if not is_valid_role(new_role):
            raise ValidationError(f"Unknown role {new_role!r}")
        with self.store.update(USERS, []) as users:
            actor = find_user(users, requester)
            if not is_admin(actor):
                raise PermissionDeniedError("Forbidden")
            if new_role == SUPERADMIN and not is_superadmin(actor):
                raise PermissionDeniedError("Forbidden")
            target = self._require(users, target_user)
            if is_superadmin(target) and not is_superadmin(actor):
                raise PermissionDeniedError("Forbidden")
            target["role"] = new_role
        logger.info("%s set role of %s to %s", requester, target_user, new_role)
        return {"ok": True, "username": target_user, "role": new_role}

    # -------------------------------------- albums --------------------------------------
    def toggle_liked_album(self, username: str, album_name: str) -> bool:
        """Like or unlike an album; returns True when it is now liked."""
        if not username or not album_name:
            raise ValidationError("Missing username/albumName")
        with self.store.update(USERS, []) as users:
            user = self._require(users, username)
            liked = list(user.get("likedAlbums") or [])
            if album_name in liked:
                liked.remove(album_name)
                now_liked = False
            else:
                liked.append(album_name)
                now_liked = True
            user["likedAlbums"] = liked
        return now_liked
