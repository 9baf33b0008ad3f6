from __future__ import annotations

import hashlib
import sys
from pathlib import Path

# Make the spidermusic package importable when running the tests locally
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from spidermusic.core.security import hash_password, is_current_hash, verify_password  # noqa: E402


def test_argon2_round_trip():
    stored = hash_password("s3cret")
    assert is_current_hash(stored)
    assert verify_password("s3cret", stored)
    assert not verify_password("S3cret", stored)


def test_legacy_pbkdf2_format():
    salt = "0f" * 16
    digest = hashlib.pbkdf2_hmac("sha512", b"pw", salt.encode(), 1000, dklen=64).hex()
    stored = f"{salt}:{digest}"
    assert not is_current_hash(stored)
    assert verify_password("pw", stored)
    assert not verify_password("pw2", stored)


def test_plaintext_and_empty_values():
    assert verify_password("1234", "1234")
    assert not verify_password("1234", "")
    assert not verify_password("", "1234")
    assert not verify_password("x", "argon2$not-a-hash")
