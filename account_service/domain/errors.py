"""Error taxonomy shared by the store, the mailer and the account workflows."""

from __future__ import annotations


class AccountError(Exception):
    """Base class for failures raised by account workflows."""

    kind = "account_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind)
        self.message = message or self.kind


class ValidationError(AccountError):
    kind = "validation_error"


class DuplicateEmail(AccountError):
    kind = "duplicate_email"


class NotFound(AccountError):
    kind = "not_found"


class AuthFailure(AccountError):
    kind = "auth_failure"


class HashingError(AccountError):
    kind = "hashing_error"


class ComparisonError(AccountError):
    kind = "comparison_error"


class MailDeliveryError(AccountError):
    kind = "mail_delivery_error"
