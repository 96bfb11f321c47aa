from __future__ import annotations

import pytest

from account_service.api.forms import RegistrationForm, ResetPasswordForm, parse_form
from account_service.domain.errors import ValidationError

VALID = {
    "email": "a@x.com",
    "username": "a",
    "password": "abc123",
    "confirmationPassword": "abc123",
}


def test_valid_registration_parses():
    result = parse_form(RegistrationForm, VALID)
    assert result.ok
    assert result.value.email == "a@x.com"
    assert result.value.confirmation_password == "abc123"


@pytest.mark.parametrize(
    "override",
    [
        {"email": "not-an-email"},
        {"username": "   "},
        {"password": "ab", "confirmationPassword": "ab"},
        {"password": "has space", "confirmationPassword": "has space"},
        {"password": "a" * 31, "confirmationPassword": "a" * 31},
        {"confirmationPassword": "abc124"},
    ],
)
def test_invalid_registration_is_a_validation_error(override):
    result = parse_form(RegistrationForm, {**VALID, **override})
    assert isinstance(result.error, ValidationError)
    assert result.error.message == "Data is not valid. Please try again"


def test_reset_form_rejects_mismatched_confirmation():
    result = parse_form(ResetPasswordForm, {"password": "abc123", "confirmationPassword": "abc999"})
    assert isinstance(result.error, ValidationError)


def test_reset_form_accepts_snake_case_names():
    result = parse_form(ResetPasswordForm, {"password": "abc123", "confirmation_password": "abc123"})
    assert result.ok
