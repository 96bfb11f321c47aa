from __future__ import annotations

import dataclasses
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from account_service.config import Settings, get_settings
from account_service.domain.account import Account
from account_service.domain.contracts import AccountDraft
from account_service.domain.errors import DuplicateEmail, NotFound
from account_service.domain.service import AccountService
from account_service.main import configure_app
from account_service.security.passwords import CredentialHasher
from account_service.security.sessions import JwtSessionCodec


class FakeRepository:
    """In-memory repository mimicking the Postgres-backed behaviors.

    Reads hand out copies so callers must ``save`` to persist mutations, and
    the email uniqueness check happens under a lock at insert time like the
    unique index does.
    """

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._lock = threading.Lock()

    def find_by_email(self, email: str) -> Account | None:
        needle = email.strip().lower()
        for account in self._accounts.values():
            if account.email.lower() == needle:
                return dataclasses.replace(account)
        return None

    def find_by_id(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return dataclasses.replace(account) if account else None

    def find_by_token(self, token: str) -> Account | None:
        if not token:
            return None
        for account in self._accounts.values():
            if account.verification_token == token:
                return dataclasses.replace(account)
        return None

    def insert(self, draft: AccountDraft) -> Account:
        with self._lock:
            needle = draft.email.strip().lower()
            if any(a.email.lower() == needle for a in self._accounts.values()):
                raise DuplicateEmail("Email is already in use")
            now = datetime.now(timezone.utc)
            account = Account(
                account_id=str(uuid.uuid4()),
                email=draft.email.strip(),
                username=draft.username,
                password_hash=draft.password_hash,
                verification_token=draft.verification_token,
                active=draft.active,
                created_at=now,
                updated_at=now,
            )
            self._accounts[account.account_id] = account
        return dataclasses.replace(account)

    def save(self, account: Account) -> Account:
        with self._lock:
            if account.account_id not in self._accounts:
                raise NotFound("account not found")
            stored = dataclasses.replace(account, updated_at=datetime.now(timezone.utc))
            self._accounts[account.account_id] = stored
        return dataclasses.replace(stored)

    def apply_password_reset(self, account_id: str, token_hash: str, password_hash: str) -> Account:
        with self._lock:
            account = self._accounts.get(account_id)
            now = datetime.now(timezone.utc)
            if (
                account is None
                or account.reset_token_hash != token_hash
                or account.reset_expires_at is None
                or account.reset_expires_at <= now
            ):
                raise NotFound("reset token not found")
            stored = dataclasses.replace(
                account,
                password_hash=password_hash,
                reset_token_hash=None,
                reset_expires_at=None,
                updated_at=now,
            )
            self._accounts[account_id] = stored
        return dataclasses.replace(stored)

    def all(self) -> list[Account]:
        return [dataclasses.replace(a) for a in self._accounts.values()]


@dataclass
class SentMail:
    to: str
    subject: str
    body_html: str


class FakeMailer:
    def __init__(self) -> None:
        self.outbox: list[SentMail] = []

    def send(self, to: str, subject: str, body_html: str) -> None:
        self.outbox.append(SentMail(to=to, subject=subject, body_html=body_html))


@pytest.fixture
def settings() -> Settings:
    return dataclasses.replace(
        get_settings(),
        base_url="http://testserver",
        session_secret="test-secret",
        reset_token_ttl_seconds=900,
    )


@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(time_cost=1, memory_cost=1024)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def service(repository, hasher, mailer, settings) -> AccountService:
    return AccountService(repository, hasher, mailer, settings)


@pytest.fixture
def session_codec(repository, settings) -> JwtSessionCodec:
    return JwtSessionCodec(
        repository,
        secret=settings.session_secret,
        issuer=settings.session_issuer,
        ttl_seconds=settings.session_ttl_seconds,
    )


@pytest.fixture
def api_client(service, session_codec, settings):
    """Provide a FastAPI test client with isolated state."""
    app = configure_app(FastAPI(), settings)
    app.state.account_service = service
    app.state.session_codec = session_codec

    with TestClient(app) as client:
        yield client, service
