"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from .account import Account
from .errors import AccountError, AuthFailure

T = TypeVar("T")


@dataclass(slots=True)
class AccountDraft:
    """Validated inputs required to insert a new account."""

    email: str
    username: str
    password_hash: str
    verification_token: str
    active: bool = False


@dataclass(slots=True)
class Result(Generic[T]):
    """Outcome of a workflow: either ``value`` or an expected ``error``."""

    value: T | None = None
    error: AccountError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T | None = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AccountError) -> "Result[T]":
        return cls(error=error)


class AuthOutcomeKind(str, Enum):
    authenticated = "authenticated"
    unknown_user = "unknown_user"
    bad_password = "bad_password"
    unverified = "unverified"


@dataclass(slots=True)
class AuthOutcome:
    """Terminal state of a single login attempt."""

    kind: AuthOutcomeKind
    account: Account | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is AuthOutcomeKind.authenticated

    def as_error(self) -> AuthFailure | None:
        if self.ok:
            return None
        return AuthFailure(self.reason)
