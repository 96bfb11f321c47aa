"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlencode

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from prometheus_client import Counter

from ..domain.account import Account
from ..domain.service import AccountService
from .forms import (
    ForgetPasswordForm,
    LoginForm,
    RegistrationForm,
    ResetPasswordForm,
    VerifyForm,
    parse_form,
)
from .guards import (
    bind_session,
    clear_session,
    current_account,
    flash,
    pop_flashes,
    require_anonymous,
    require_authenticated,
)

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

LOGIN_ATTEMPTS = Counter(
    "account_login_attempts",
    "Login attempts grouped by authentication outcome.",
    ["outcome"],
)
REGISTRATIONS = Counter("account_registrations", "Accounts created through the register form.")

public_router = APIRouter()
router = APIRouter(prefix="/users", tags=["users"])


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def _render(
    request: Request,
    template_name: str,
    ctx: dict[str, Any] | None = None,
    *,
    account: Account | None = None,
) -> HTMLResponse:
    """TemplateResponse wrapper injecting flashes and the current account.

    Guarded handlers pass the account their dependency already resolved so the
    session is decoded once per request.
    """
    base_ctx = {
        "flashes": pop_flashes(request),
        "current_account": account if account is not None else current_account(request),
    }
    return templates.TemplateResponse(request, template_name, {**base_ctx, **(ctx or {})})


def _redirect(location: str) -> RedirectResponse:
    return RedirectResponse(location, status_code=status.HTTP_303_SEE_OTHER)


@public_router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    return _render(request, "index.html")


@router.get("/register", response_class=HTMLResponse, dependencies=[Depends(require_anonymous)])
def register_form(request: Request) -> HTMLResponse:
    return _render(request, "register.html")


@router.post("/register")
def register(
    request: Request,
    email: str = Form(""),
    username: str = Form(""),
    password: str = Form(""),
    confirmation_password: str = Form("", alias="confirmationPassword"),
    service: AccountService = Depends(get_service),
) -> RedirectResponse:
    """Validate the registration form, create the account and mail its token."""
    parsed = parse_form(
        RegistrationForm,
        {
            "email": email,
            "username": username,
            "password": password,
            "confirmationPassword": confirmation_password,
        },
    )
    if not parsed.ok:
        flash(request, "error", parsed.error.message)
        return _redirect("/users/register")

    form = parsed.value
    result = service.register(form.email, form.username, form.password)
    if not result.ok:
        flash(request, "error", result.error.message)
        return _redirect("/users/register")

    REGISTRATIONS.inc()
    flash(request, "success", "Please check your email")
    return _redirect("/users/login")


@router.get("/login", response_class=HTMLResponse, dependencies=[Depends(require_anonymous)])
def login_form(request: Request) -> HTMLResponse:
    return _render(request, "login.html")


@router.post("/login")
def login(
    request: Request,
    email: str = Form(""),
    password: str = Form(""),
    service: AccountService = Depends(get_service),
) -> RedirectResponse:
    """Authenticate the posted credentials and bind the session on success."""
    parsed = parse_form(LoginForm, {"email": email, "password": password}, "Missing credentials")
    if not parsed.ok:
        flash(request, "error", parsed.error.message)
        return _redirect("/users/login")

    outcome = service.authenticate(parsed.value.email, parsed.value.password)
    LOGIN_ATTEMPTS.labels(outcome=outcome.kind.value).inc()
    if not outcome.ok:
        logger.info("login refused: %s", outcome.kind.value)
        flash(request, "error", outcome.as_error().message)
        return _redirect("/users/login")

    bind_session(request, outcome.account)
    return _redirect("/users/dashboard")


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(request: Request, account: Account = Depends(require_authenticated)) -> HTMLResponse:
    return _render(request, "dashboard.html", {"username": account.username}, account=account)


@router.get("/verify", response_class=HTMLResponse, dependencies=[Depends(require_anonymous)])
def verify_form(request: Request) -> HTMLResponse:
    return _render(request, "verify.html")


@router.post("/verify")
def verify(
    request: Request,
    secret_token: str = Form("", alias="secretToken"),
    service: AccountService = Depends(get_service),
) -> RedirectResponse:
    """Consume a verification token and activate its account."""
    parsed = parse_form(VerifyForm, {"secretToken": secret_token.strip()}, "No user found")
    if not parsed.ok:
        flash(request, "error", parsed.error.message)
        return _redirect("/users/verify")

    result = service.verify(parsed.value.secret_token)
    if not result.ok:
        flash(request, "error", result.error.message)
        return _redirect("/users/verify")

    flash(request, "success", "Thank you! Now you may login")
    return _redirect("/users/login")


@router.get("/forget", response_class=HTMLResponse)
def forget_form(request: Request) -> HTMLResponse:
    return _render(request, "forget.html")


@router.post("/forget")
def forget(
    request: Request,
    email: str = Form(""),
    service: AccountService = Depends(get_service),
) -> RedirectResponse:
    """Mail a single-use password-reset link to a registered address."""
    parsed = parse_form(ForgetPasswordForm, {"email": email}, "Email not found")
    if not parsed.ok:
        flash(request, "error", parsed.error.message)
        return _redirect("/users/forget")

    result = service.request_password_reset(parsed.value.email)
    if not result.ok:
        flash(request, "error", result.error.message)
        return _redirect("/users/forget")

    flash(request, "success", "Please check your email to reset your password")
    return _redirect("/users/forget")


@router.get("/reset/{account_id}", response_class=HTMLResponse, response_model=None)
def reset_form(
    request: Request,
    account_id: str,
    token: str = Query(""),
    service: AccountService = Depends(get_service),
) -> HTMLResponse | RedirectResponse:
    checked = service.check_reset_link(account_id, token)
    if not checked.ok:
        flash(request, "error", checked.error.message)
        return _redirect("/users/forget")
    return _render(request, "reset.html", {"account_id": account_id, "token": token})


@router.post("/reset/{account_id}")
def reset_password(
    request: Request,
    account_id: str,
    token: str = Query(""),
    password: str = Form(""),
    confirmation_password: str = Form("", alias="confirmationPassword"),
    service: AccountService = Depends(get_service),
) -> RedirectResponse:
    """Apply a new password; invalid input is rejected before anything is persisted."""
    parsed = parse_form(
        ResetPasswordForm,
        {"password": password, "confirmationPassword": confirmation_password},
    )
    if not parsed.ok:
        flash(request, "error", parsed.error.message)
        return _redirect(f"/users/reset/{quote(account_id)}?{urlencode({'token': token})}")

    result = service.reset_password(account_id, token, parsed.value.password)
    if not result.ok:
        flash(request, "error", result.error.message)
        return _redirect("/users/forget")

    flash(request, "success", "Your password has been reset, you may login")
    return _redirect("/users/login")


@router.get("/logout")
def logout(request: Request, account: Account = Depends(require_authenticated)) -> RedirectResponse:
    clear_session(request)
    logger.info("account %s logged out", account.account_id)
    flash(request, "success", "Successfully logged out, hope to see you soon")
    return _redirect("/")
