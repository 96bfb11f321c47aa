"""FastAPI application wiring for the account service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.responses import HTMLResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool
from starlette.middleware.sessions import SessionMiddleware
import uvicorn

from .api.routes import public_router, router as users_router, templates
from .config import Settings, get_settings
from .domain.errors import AccountError
from .domain.service import AccountService
from .notifications.mailer import build_mailer
from .repository import AccountRepository
from .security.passwords import CredentialHasher
from .security.sessions import JwtSessionCodec

settings = get_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

ops_router = APIRouter()


@ops_router.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@ops_router.get("/metrics")
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


def _error_page(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "error.html",
        {"flashes": [], "current_account": None},
        status_code=500,
    )


async def account_error_handler(request: Request, exc: AccountError) -> HTMLResponse:
    """Unexpected account failures (hashing, mail delivery) end in a generic page."""
    logger.error("request %s %s failed: %s", request.method, request.url.path, exc.kind)
    return _error_page(request)


async def unhandled_error_handler(request: Request, exc: Exception) -> HTMLResponse:
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return _error_page(request)


def configure_app(app: FastAPI, config: Settings) -> FastAPI:
    """Attach middleware, routers and error handlers shared by every deployment."""
    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie="account_session",
        max_age=config.session_ttl_seconds,
        same_site="lax",
        https_only=config.session_cookie_secure,
    )
    app.add_exception_handler(AccountError, account_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(ops_router)
    app.include_router(public_router)
    app.include_router(users_router)
    return app


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise shared resources (Postgres pool, services) for the app lifecycle."""
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open()
    repository = AccountRepository(pool)
    repository.create_schema()
    app.state.pool = pool
    app.state.account_service = AccountService(
        repository,
        CredentialHasher(
            time_cost=settings.password_time_cost,
            memory_cost=settings.password_memory_cost,
        ),
        build_mailer(settings),
        settings,
    )
    app.state.session_codec = JwtSessionCodec(
        repository,
        secret=settings.session_secret,
        issuer=settings.session_issuer,
        ttl_seconds=settings.session_ttl_seconds,
    )
    logger.info("%s %s ready", settings.app_name, settings.version)
    try:
        yield
    finally:
        pool.close()


app = configure_app(
    FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan),
    settings,
)


def run() -> None:
    uvicorn.run(app, host=settings.http_host, port=settings.http_port)
