"""Session binding between an authenticated account and later requests."""

from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import jwt

from ..domain.account import Account

logger = logging.getLogger(__name__)


class AccountLookup(Protocol):
    def find_by_id(self, account_id: str) -> Account | None: ...


class SessionCodec(Protocol):
    """Turns an account into a durable session identifier and back."""

    def encode(self, account: Account) -> str: ...

    def decode(self, session_id: str) -> Account | None: ...


class JwtSessionCodec:
    """Signed HS256 session identifiers rehydrated through the account store."""

    algorithm = "HS256"

    def __init__(
        self,
        store: AccountLookup,
        *,
        secret: str,
        issuer: str,
        ttl_seconds: int,
    ) -> None:
        self._store = store
        self._secret = secret
        self._issuer = issuer
        self._ttl_seconds = ttl_seconds

    def encode(self, account: Account) -> str:
        """Create a signed session identifier for ``account``.

        Parameters
        ----------
        account:
            Authenticated account whose id becomes the ``sub`` claim.

        Returns
        -------
        str
            The encoded JWT string.
        """
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": self._issuer,
            "sub": account.account_id,
            "iat": now,
            "exp": now + self._ttl_seconds,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, session_id: str) -> Account | None:
        """Return the bound account, or ``None`` for invalid, expired or stale sessions."""
        if not session_id:
            return None
        try:
            claims = jwt.decode(
                session_id,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self._issuer,
            )
        except jwt.PyJWTError as exc:
            logger.debug("rejected session identifier: %s", exc)
            return None
        account_id = str(claims.get("sub") or "")
        if not account_id:
            return None
        account = self._store.find_by_id(account_id)
        if account is None or not account.active:
            return None
        return account
