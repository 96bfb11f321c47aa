"""Shape validation for the submitted HTML forms."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..domain.contracts import Result
from ..domain.errors import ValidationError

PASSWORD_PATTERN = r"^[A-Za-z0-9]{3,30}$"
INVALID_DATA_MESSAGE = "Data is not valid. Please try again"

FormT = TypeVar("FormT", bound=BaseModel)


class _Form(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _PasswordPair(_Form):
    password: str = Field(..., pattern=PASSWORD_PATTERN)
    confirmation_password: str = Field(..., alias="confirmationPassword")

    @model_validator(mode="after")
    def confirmation_matches(self) -> "_PasswordPair":
        if self.confirmation_password != self.password:
            raise ValueError("password confirmation does not match")
        return self


class RegistrationForm(_PasswordPair):
    """Fields posted to ``/users/register``."""

    email: EmailStr
    username: str = Field(..., min_length=1)

    @model_validator(mode="before")
    @classmethod
    def strip_username(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("username"), str):
            data = {**data, "username": data["username"].strip()}
        return data


class ResetPasswordForm(_PasswordPair):
    """New password and its confirmation posted to ``/users/reset/{account_id}``."""


class LoginForm(_Form):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class VerifyForm(_Form):
    secret_token: str = Field(..., alias="secretToken", min_length=1)


class ForgetPasswordForm(_Form):
    email: EmailStr


def parse_form(model: type[FormT], data: dict[str, Any], message: str = INVALID_DATA_MESSAGE) -> Result[FormT]:
    """Validate ``data`` against ``model``; any violation becomes a ``ValidationError``."""
    try:
        return Result.success(model.model_validate(data))
    except PydanticValidationError:
        return Result.failure(ValidationError(message))
