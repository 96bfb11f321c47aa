"""Credential check for a single login attempt."""

from __future__ import annotations

import logging
from typing import Protocol

from .account import Account
from .contracts import AuthOutcome, AuthOutcomeKind

logger = logging.getLogger(__name__)

UNKNOWN_USER_REASON = "Unknown user"
BAD_PASSWORD_REASON = "Unknown password"
UNVERIFIED_REASON = "You need to verify email first"


class EmailLookup(Protocol):
    def find_by_email(self, email: str) -> Account | None: ...


class PasswordComparer(Protocol):
    def compare(self, plaintext: str, hashed: str) -> bool: ...


def authenticate(
    store: EmailLookup,
    hasher: PasswordComparer,
    email: str,
    password: str,
) -> AuthOutcome:
    """Resolve ``email``/``password`` to an authenticated account or a failure reason.

    Checks run in order: the account exists, the password matches, the account
    is active. ``ComparisonError`` from the hasher propagates.
    """
    account = store.find_by_email(email)
    if account is None:
        return AuthOutcome(AuthOutcomeKind.unknown_user, reason=UNKNOWN_USER_REASON)

    if not hasher.compare(password, account.password_hash):
        return AuthOutcome(AuthOutcomeKind.bad_password, reason=BAD_PASSWORD_REASON)

    if not account.active:
        return AuthOutcome(AuthOutcomeKind.unverified, reason=UNVERIFIED_REASON)

    logger.info("account %s authenticated", account.account_id)
    return AuthOutcome(AuthOutcomeKind.authenticated, account=account)
