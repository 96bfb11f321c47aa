"""Random capability tokens for email verification and password resets."""

from __future__ import annotations

import hashlib
import secrets
import string

VERIFICATION_TOKEN_LENGTH = 32
_ALPHABET = string.ascii_letters + string.digits


def generate_verification_token(length: int = VERIFICATION_TOKEN_LENGTH) -> str:
    """Return a random alphanumeric token emailed to confirm address ownership."""
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_reset_token() -> tuple[str, str]:
    """Generate a password-reset token string and its SHA-256 hash."""
    token = secrets.token_urlsafe(32)
    return token, hash_reset_token(token)


def hash_reset_token(token: str) -> str:
    """Return the SHA-256 hex digest for a reset token string."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
