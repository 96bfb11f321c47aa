"""Salted one-way password hashing backed by argon2id."""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2 import exceptions as argon2_errors

from ..domain.errors import ComparisonError, HashingError


class CredentialHasher:
    """Hash and compare secrets; the per-call salt lives inside the encoded hash."""

    def __init__(self, *, time_cost: int = 3, memory_cost: int = 65536) -> None:
        self._hasher = PasswordHasher(time_cost=time_cost, memory_cost=memory_cost)

    def hash(self, plaintext: str) -> str:
        """Return the encoded argon2id hash for ``plaintext``.

        Raises
        ------
        HashingError
            When the underlying primitive fails.
        """
        try:
            return self._hasher.hash(plaintext)
        except argon2_errors.HashingError as exc:
            raise HashingError("hashing failed") from exc

    def compare(self, plaintext: str, hashed: str) -> bool:
        """Return ``True`` when ``plaintext`` matches the stored ``hashed`` value.

        Raises
        ------
        ComparisonError
            When ``hashed`` is not a well-formed argon2 hash.
        """
        try:
            return self._hasher.verify(hashed, plaintext)
        except argon2_errors.VerifyMismatchError:
            return False
        except (argon2_errors.InvalidHashError, argon2_errors.VerificationError) as exc:
            raise ComparisonError("comparing failed") from exc
