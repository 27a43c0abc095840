# schoolhub/domain/services.py
from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import os
import secrets
from datetime import datetime, timezone

CODE_ALPHABET = "0123456789"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_numeric_code(length: int = 6) -> str:
    """Zero-padded numeric code of `length` digits."""
    if length <= 0:
        raise ValueError("code length must be positive")
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def _sha256_salt_plus_code(salt: bytes, code: str) -> bytes:
    h = hashlib.sha256()
    h.update(salt)
    h.update(code.encode("utf-8"))
    return h.digest()


def make_code_digest(code: str) -> tuple[str, str]:
    """
    Return (salt_b64, digest_b64) where digest = SHA256(salt || code).
    """
    salt = os.urandom(16)
    digest = _sha256_salt_plus_code(salt, code)
    return (
        base64.b64encode(salt).decode("utf-8"),
        base64.b64encode(digest).decode("utf-8"),
    )


def verify_code_digest(code: str, salt_b64: str, digest_b64: str) -> bool:
    """
    Verify code against (salt_b64, digest_b64) from make_code_digest().
    """
    try:
        salt = base64.b64decode(salt_b64.encode("utf-8"), validate=True)
        expected = base64.b64decode(digest_b64.encode("utf-8"), validate=True)
    except (binascii.Error, ValueError):
        return False

    calc = _sha256_salt_plus_code(salt, code)
    return hmac.compare_digest(calc, expected)
