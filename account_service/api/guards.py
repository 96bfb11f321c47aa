"""Flash notices and the session-based access guards."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from ..domain.account import Account
from ..security.sessions import SessionCodec

SESSION_KEY = "sid"
FLASH_KEY = "_flashes"
PUBLIC_PAGE = "/"


def flash(request: Request, category: str, message: str) -> None:
    """Queue a one-time notice that survives the next redirect."""
    flashes = list(request.session.get(FLASH_KEY, []))
    flashes.append({"category": category, "message": message})
    request.session[FLASH_KEY] = flashes


def pop_flashes(request: Request) -> list[dict[str, str]]:
    return request.session.pop(FLASH_KEY, [])


def get_session_codec(request: Request) -> SessionCodec:
    """Resolve the `SessionCodec` stored on the FastAPI application state."""
    codec: SessionCodec = request.app.state.session_codec
    return codec


def bind_session(request: Request, account: Account) -> None:
    request.session[SESSION_KEY] = get_session_codec(request).encode(account)


def clear_session(request: Request) -> None:
    request.session.pop(SESSION_KEY, None)


def current_account(request: Request) -> Account | None:
    """Return the account bound to this request's session, dropping stale bindings."""
    session_id = request.session.get(SESSION_KEY)
    if not session_id:
        return None
    account = get_session_codec(request).decode(session_id)
    if account is None:
        clear_session(request)
    return account


def _redirect(location: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_303_SEE_OTHER, headers={"Location": location})


def require_authenticated(request: Request) -> Account:
    account = current_account(request)
    if account is None:
        flash(request, "error", "Sorry you must be registered first")
        raise _redirect(PUBLIC_PAGE)
    return account


def require_anonymous(request: Request) -> None:
    if current_account(request) is not None:
        flash(request, "error", "Sorry you are already logged in")
        raise _redirect(PUBLIC_PAGE)
