from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from saarthi import routes_admin, routes_auth, routes_contact, routes_favorites, routes_properties
from saarthi.config import Settings, configure_logging, enforce_secure_secrets
from saarthi.context import AppContext
from saarthi.deps import get_ctx, get_optional_user
from saarthi.models import User
from saarthi.tracking import client_ip
from saarthi.utils.cloudinary_storage import configure_cloudinary
from saarthi.utils.helpers import INDIAN_STATES, MAJOR_CITIES, error_response, success_response


logger = logging.getLogger(__name__)

SESSION_COOKIE = "saarthi.sid"
RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def _validation_message(exc: RequestValidationError) -> str:
    """Flatten pydantic errors into one comma-separated message."""
    parts: list[str] = []
    for err in exc.errors():
        loc = [str(x) for x in (err.get("loc") or ()) if x not in ("body", "query", "path")]
        msg = str(err.get("msg") or "Invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return ", ".join(parts) or "Invalid request"


def _install_middleware(app: FastAPI, settings: Settings, ctx: AppContext) -> None:
    # Starlette runs the last-added middleware first; this block is ordered innermost -> outermost.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie=SESSION_COOKIE,
        max_age=settings.session_max_age,
        same_site="none" if settings.is_production else "lax",
        https_only=settings.is_production,
    )

    @app.middleware("http")
    async def _rate_limit(request: Request, call_next):
        if request.url.path.startswith("/api"):
            try:
                quota = ctx.limiter.hit(key=f"ip:{client_ip(request)}", detail=RATE_LIMIT_MESSAGE)
            except HTTPException as exc:
                logger.warning("Rate limit exceeded: ip=%s path=%s", client_ip(request), request.url.path)
                return JSONResponse(
                    status_code=exc.status_code,
                    content={"success": False, "error": exc.detail},
                    headers=exc.headers,
                )
            resp = await call_next(request)
            resp.headers.update(quota.headers())
            return resp
        return await call_next(request)

    if not settings.is_production:
        @app.middleware("http")
        async def _access_log(request: Request, call_next):
            started = time.perf_counter()
            resp = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, resp.status_code, elapsed_ms)
            return resp

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.client_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    @app.middleware("http")
    async def _security_headers(request: Request, call_next):
        resp = await call_next(request)
        resp.headers.setdefault("X-Content-Type-Options", "nosniff")
        resp.headers.setdefault("X-Frame-Options", "DENY")
        resp.headers.setdefault("Referrer-Policy", "no-referrer")
        resp.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
        # Listing images are embedded by the web client on another origin.
        resp.headers.setdefault("Cross-Origin-Resource-Policy", "cross-origin")
        return resp

    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.allowed_hosts)
    # X-Forwarded-For is honoured only when the peer is a configured proxy.
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=settings.forwarded_allow_ips)


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        resp = error_response(exc.status_code, str(exc.detail))
        for key, value in (exc.headers or {}).items():
            resp.headers[key] = value
        return resp

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return error_response(400, _validation_message(exc))

    @app.exception_handler(IntegrityError)
    async def _integrity_error(request: Request, exc: IntegrityError):
        logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
        return error_response(400, "Duplicate entry")

    @app.exception_handler(SQLAlchemyError)
    async def _database_error(request: Request, exc: SQLAlchemyError):
        logger.error("Database error on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(500, "Database error")

    @app.exception_handler(Exception)
    async def _unhandled_error(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(500, "Server Error")


def create_app(settings: Settings | None = None) -> FastAPI:
    configure_logging()
    settings = settings or Settings.from_env()
    # Production hardening: ensure we don't run with dangerous defaults.
    enforce_secure_secrets(settings)
    ctx = AppContext.build(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ctx.database.url.startswith("sqlite"):
            # Local dev runs without migrations.
            ctx.database.create_all()
        configure_cloudinary(settings)
        logger.info("Environment: %s", settings.app_env)
        logger.info("Client URL: %s", settings.client_url)
        logger.info("Google Sign-In: %s", "enabled" if settings.google_enabled else "disabled")
        yield
        ctx.database.dispose()

    app = FastAPI(title="Saarthi Real Estate API", lifespan=lifespan)
    app.state.ctx = ctx

    _install_middleware(app, settings, ctx)
    _install_exception_handlers(app)

    @app.get("/")
    def root(me: Annotated[User | None, Depends(get_optional_user)]) -> dict[str, Any]:
        return {
            "status": "running",
            "message": "Saarthi Real Estate Backend API",
            "user": me.email if me else "Guest",
        }

    @app.get("/api/health")
    def health(
        ctx: Annotated[AppContext, Depends(get_ctx)],
        me: Annotated[User | None, Depends(get_optional_user)],
    ) -> dict[str, Any]:
        try:
            with ctx.database.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            database = "connected"
        except SQLAlchemyError:
            logger.exception("Health check: database unreachable")
            database = "unreachable"
        return {
            "status": "healthy",
            "database": database,
            "authenticated": bool(me),
            "environment": ctx.settings.app_env,
        }

    @app.get("/api/meta/locations")
    def meta_locations():
        return success_response(data={"states": INDIAN_STATES, "cities": MAJOR_CITIES})

    app.include_router(routes_auth.router)
    app.include_router(routes_properties.router)
    app.include_router(routes_favorites.router)
    app.include_router(routes_contact.router)
    app.include_router(routes_admin.router)
    return app


app = create_app()
