"""Account service orchestrating persistence, hashing, tokens and outbound mail."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Protocol

from .account import Account
from .authentication import authenticate
from .contracts import AccountDraft, AuthOutcome, Result
from .errors import DuplicateEmail, NotFound
from ..config import Settings
from ..notifications.mailer import Mailer, compose_reset_email, compose_verification_email
from ..security.passwords import CredentialHasher
from ..security.tokens import generate_reset_token, generate_verification_token, hash_reset_token

logger = logging.getLogger(__name__)

INVALID_RESET_LINK = "Reset link is invalid or has expired"


class AccountStore(Protocol):
    def find_by_email(self, email: str) -> Account | None: ...

    def find_by_id(self, account_id: str) -> Account | None: ...

    def find_by_token(self, token: str) -> Account | None: ...

    def insert(self, draft: AccountDraft) -> Account: ...

    def save(self, account: Account) -> Account: ...

    def apply_password_reset(self, account_id: str, token_hash: str, password_hash: str) -> Account: ...


class AccountService:
    """Registration, verification, login and password-reset workflows.

    Expected failures (duplicate email, unknown token, invalid reset link) are
    returned as ``Result.error``; hashing, comparison and mail delivery errors
    propagate to the caller.
    """

    def __init__(
        self,
        repository: AccountStore,
        hasher: CredentialHasher,
        mailer: Mailer,
        settings: Settings,
    ) -> None:
        """Store dependencies used to orchestrate the account workflows."""
        self._repository = repository
        self._hasher = hasher
        self._mailer = mailer
        self._settings = settings

    def register(self, email: str, username: str, password: str) -> Result[Account]:
        """Create an inactive account and email its verification token."""
        if self._repository.find_by_email(email) is not None:
            return Result.failure(DuplicateEmail("Email is already in use"))

        draft = AccountDraft(
            email=email,
            username=username,
            password_hash=self._hasher.hash(password),
            verification_token=generate_verification_token(),
            active=False,
        )
        try:
            account = self._repository.insert(draft)
        except DuplicateEmail as exc:
            return Result.failure(exc)

        subject, body = compose_verification_email(
            account.verification_token, f"{self._settings.base_url}/users/verify"
        )
        self._mailer.send(account.email, subject, body)
        logger.info("account %s registered, verification pending", account.account_id)
        return Result.success(account)

    def verify(self, token: str) -> Result[Account]:
        """Activate the pending account holding ``token`` and clear the token."""
        account = self._repository.find_by_token(token)
        if account is None:
            return Result.failure(NotFound("No user found"))

        account.active = True
        account.verification_token = ""
        try:
            account = self._repository.save(account)
        except NotFound as exc:
            return Result.failure(exc)
        logger.info("account %s verified", account.account_id)
        return Result.success(account)

    def authenticate(self, email: str, password: str) -> AuthOutcome:
        return authenticate(self._repository, self._hasher, email, password)

    def request_password_reset(self, email: str) -> Result[Account]:
        """Issue a single-use reset token for ``email`` and mail the reset link."""
        account = self._repository.find_by_email(email)
        if account is None:
            return Result.failure(NotFound("Email not found"))

        token, token_hash = generate_reset_token()
        ttl = self._settings.reset_token_ttl_seconds
        account.reset_token_hash = token_hash
        account.reset_expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl)
        try:
            account = self._repository.save(account)
        except NotFound as exc:
            return Result.failure(exc)

        reset_url = f"{self._settings.base_url}/users/reset/{account.account_id}?token={token}"
        subject, body = compose_reset_email(reset_url, ttl_minutes=max(1, ttl // 60))
        self._mailer.send(account.email, subject, body)
        logger.info("password reset requested for account %s", account.account_id)
        return Result.success(account)

    def check_reset_link(self, account_id: str, token: str) -> Result[Account]:
        """Return the account a reset link belongs to if the link is still usable."""
        account = self._repository.find_by_id(account_id)
        if account is None or not token or not account.reset_token_hash:
            return Result.failure(NotFound(INVALID_RESET_LINK))
        if not hmac.compare_digest(hash_reset_token(token), account.reset_token_hash):
            return Result.failure(NotFound(INVALID_RESET_LINK))
        expires_at = account.reset_expires_at
        if expires_at is None or expires_at <= datetime.now(timezone.utc):
            return Result.failure(NotFound(INVALID_RESET_LINK))
        return Result.success(account)

    def reset_password(self, account_id: str, token: str, new_password: str) -> Result[Account]:
        """Replace the password of the account behind a valid reset link.

        The store consumes the token in the same write, so a link that was
        used concurrently reports the invalid-link notice.
        """
        checked = self.check_reset_link(account_id, token)
        if not checked.ok:
            return checked

        try:
            account = self._repository.apply_password_reset(
                checked.value.account_id,
                hash_reset_token(token),
                self._hasher.hash(new_password),
            )
        except NotFound:
            return Result.failure(NotFound(INVALID_RESET_LINK))
        logger.info("password reset applied for account %s", account.account_id)
        return Result.success(account)
