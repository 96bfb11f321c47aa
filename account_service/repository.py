"""Database repository for account data."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.contracts import AccountDraft
from .domain.errors import DuplicateEmail, NotFound

logger = logging.getLogger(__name__)

EMAIL_UNIQUE_INDEX = "accounts_email_key"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        account_id UUID PRIMARY KEY,
        email TEXT NOT NULL,
        username TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        verification_token TEXT NOT NULL DEFAULT '',
        active BOOLEAN NOT NULL DEFAULT FALSE,
        reset_token_hash TEXT,
        reset_expires_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    f"CREATE UNIQUE INDEX IF NOT EXISTS {EMAIL_UNIQUE_INDEX} ON accounts (lower(email))",
    """
    CREATE UNIQUE INDEX IF NOT EXISTS accounts_pending_token_key
    ON accounts (verification_token) WHERE verification_token <> ''
    """,
)

_COLUMNS = """
    account_id, email, username, password_hash, verification_token, active,
    created_at, updated_at, reset_token_hash, reset_expires_at
"""


class AccountRepository:
    """Postgres-backed account persistence; email uniqueness is enforced by an index."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def create_schema(self) -> None:
        """Create the accounts table and its indexes when missing."""
        with self._pool.connection() as conn:
            with conn.cursor() as cur:
                for statement in SCHEMA_STATEMENTS:
                    cur.execute(statement)
            conn.commit()

    def find_by_email(self, email: str) -> Account | None:
        """Return the account registered under ``email`` (case-insensitive)."""
        return self._fetch_one("lower(email) = lower(%s)", (email.strip(),))

    def find_by_id(self, account_id: str) -> Account | None:
        """Return the account with ``account_id`` or ``None`` for unknown or malformed ids."""
        try:
            parsed = uuid.UUID(str(account_id))
        except ValueError:
            return None
        return self._fetch_one("account_id = %s", (parsed,))

    def find_by_token(self, token: str) -> Account | None:
        """Return the pending account holding verification ``token``."""
        if not token:
            return None
        return self._fetch_one("verification_token = %s", (token,))

    def insert(self, draft: AccountDraft) -> Account:
        """Persist a new account.

        Raises
        ------
        DuplicateEmail
            When the unique email index rejects the row.
        """
        account_id = uuid.uuid4()
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        f"""
                        INSERT INTO accounts (
                            account_id, email, username, password_hash,
                            verification_token, active, created_at, updated_at
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_COLUMNS}
                        """,
                        (
                            account_id,
                            draft.email.strip(),
                            draft.username,
                            draft.password_hash,
                            draft.verification_token,
                            draft.active,
                            now,
                            now,
                        ),
                    )
                    row = cur.fetchone()
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            if exc.diag.constraint_name == EMAIL_UNIQUE_INDEX:
                logger.info("insert rejected by %s", EMAIL_UNIQUE_INDEX)
                raise DuplicateEmail("Email is already in use") from exc
            raise
        return self._map_record(row)

    def save(self, account: Account) -> Account:
        """Persist mutable fields of an existing account and bump ``updated_at``.

        Raises
        ------
        NotFound
            When the record no longer exists.
        """
        now = datetime.now(timezone.utc)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE accounts
                    SET username = %s,
                        password_hash = %s,
                        verification_token = %s,
                        active = %s,
                        reset_token_hash = %s,
                        reset_expires_at = %s,
                        updated_at = %s
                    WHERE account_id = %s
                    RETURNING {_COLUMNS}
                    """,
                    (
                        account.username,
                        account.password_hash,
                        account.verification_token,
                        account.active,
                        account.reset_token_hash,
                        account.reset_expires_at,
                        now,
                        uuid.UUID(account.account_id),
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        if not row:
            raise NotFound("account not found")
        return self._map_record(row)

    def apply_password_reset(self, account_id: str, token_hash: str, password_hash: str) -> Account:
        """Swap in ``password_hash`` and consume the reset token in one statement.

        The update only matches while ``token_hash`` is still the stored,
        unexpired reset token, so concurrent submissions of one link cannot
        both succeed.

        Raises
        ------
        NotFound
            When the account is gone or its reset token was already consumed or expired.
        """
        now = datetime.now(timezone.utc)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE accounts
                    SET password_hash = %s,
                        reset_token_hash = NULL,
                        reset_expires_at = NULL,
                        updated_at = %s
                    WHERE account_id = %s
                      AND reset_token_hash = %s
                      AND reset_expires_at > %s
                    RETURNING {_COLUMNS}
                    """,
                    (password_hash, now, uuid.UUID(account_id), token_hash, now),
                )
                row = cur.fetchone()
            conn.commit()
        if not row:
            raise NotFound("reset token not found")
        return self._map_record(row)

    def _fetch_one(self, where_sql: str, params: tuple) -> Account | None:
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE {where_sql}", params)
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            email=row[1],
            username=row[2],
            password_hash=row[3],
            verification_token=row[4],
            active=row[5],
            created_at=row[6],
            updated_at=row[7],
            reset_token_hash=row[8],
            reset_expires_at=row[9],
        )
