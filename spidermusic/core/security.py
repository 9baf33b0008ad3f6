"""Security helpers (hashing and verification)."""

from __future__ import annotations

import hashlib
import secrets

from argon2 import PasswordHasher, exceptions as argon_exc

_ph = PasswordHasher()
_PREFIX = "argon2$"
_PBKDF2_ITERATIONS = 1000
_PBKDF2_KEYLEN = 64


def hash_password(password: str) -> str:
    """Create a modern Argon2 hash with a prefix for detection."""
    hashed = _ph.hash(password)
    return f"{_PREFIX}{hashed}"


def is_current_hash(stored_hash: str | None) -> bool:
    return (stored_hash or "").startswith(_PREFIX)


def _legacy_pbkdf2(password: str, salt: str) -> str:
    return hashlib.pbkdf2_hmac(
        "sha512", password.encode(), salt.encode(), _PBKDF2_ITERATIONS, dklen=_PBKDF2_KEYLEN
    ).hex()


def verify_password(password: str, stored_hash: str | None) -> bool:
    """
    Check a password against Argon2, legacy "salt:hash" PBKDF2 or, for old
    prototype data, a plaintext value.
    """
    stored = stored_hash or ""
    if not stored or not password:
        return False
    if stored.startswith(_PREFIX):
        hashed = stored[len(_PREFIX) :]
        try:
            return _ph.verify(hashed, password)
        except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
            return False
    parts = stored.split(":")
    if len(parts) == 2 and all(parts):
        salt, digest = parts
        return secrets.compare_digest(_legacy_pbkdf2(password, salt), digest)
    return secrets.compare_digest(password.encode(), stored.encode())
