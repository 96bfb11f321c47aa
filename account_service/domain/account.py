from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user's identity and credentials."""

    account_id: str
    email: str
    username: str
    password_hash: str
    verification_token: str
    active: bool
    created_at: datetime
    updated_at: datetime
    reset_token_hash: str | None = None
    reset_expires_at: datetime | None = None
