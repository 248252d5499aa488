"""
Mini-Blog Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the Database, registers middleware, exception
       handlers and routers, and returns the app. uvicorn serves the
       module-level `app` (uvicorn miniblog.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware:  Request ID → Access Log → GZip → CORS │
    │                                                     │
    │  Routers (under API_PREFIX, default /api):          │
    │    /auth  /users  /posts  /comments  /health        │
    │                                                     │
    │  Exception Handlers:                                │
    │    MiniBlogError → kind.status_code                 │
    │    RequestValidationError → 400                     │
    │    IntegrityError (unique) → 409                    │
    │    HTTPException (unknown route, 405) → envelope    │
    │    Exception → 500                                  │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, optional create_all
    Shutdown: dispose the engine (closes every pooled connection)
"""

import logging
import sys
import traceback
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from miniblog import __version__
from miniblog.config import Settings, get_settings
from miniblog.database import Database
from miniblog.exceptions import (
    ErrorKind,
    MiniBlogError,
    conflict_from_integrity_error,
    is_unique_violation,
)
from miniblog.middleware.logging import RequestLoggingMiddleware, client_ip
from miniblog.middleware.request_id import RequestIDMiddleware, request_id_var
from miniblog.routes import auth, comments, health, posts, users
from miniblog.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configures the root logger once: stdout, ISO timestamps, module names.

    Format: 2024-01-15T12:00:00 [INFO] miniblog.access: GET /api/posts 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(settings.log_level)
    logger.info("=" * 60)
    logger.info("Mini-Blog backend %s starting (%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        raise

    if settings.db_create_tables:
        await database.create_all()

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Mini-Blog backend shutting down...")
    await database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_var.get("")


def error_response(
    request: Request,
    status_code: int,
    message: str,
    errors: Optional[List[Dict[str, str]]] = None,
    stack: Optional[str] = None,
) -> JSONResponse:
    body = ErrorResponse(
        message=message,
        errors=errors,
        request_id=_request_id(request) or None,
        stack=stack,
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, by_alias=True, exclude_none=True),
    )


def _field_name(loc: tuple) -> str:
    # ("body", "title") → "title"; ("query", "page") → "page"
    if not loc:
        return "request"
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or str(loc[-1])


def register_exception_handlers(app: FastAPI) -> None:
    """
    Maps every error to the JSON error envelope.

    Handler hierarchy:
        MiniBlogError          → its kind's status (400/401/403/404/409/500)
        RequestValidationError → 400 with one {field, message} per problem
        IntegrityError         → 409 for unique violations, else 500
        HTTPException          → its status (unknown routes → 404)
        Exception (fallback)   → 500; stack included outside production

    4xx are logged at WARNING, 5xx at ERROR with the traceback.
    """
    settings: Settings = app.state.settings

    def log_unexpected(request: Request, exc: Exception) -> Optional[str]:
        logger.error(
            "[%s] Unhandled %s on %s %s from %s: %s",
            _request_id(request),
            type(exc).__name__,
            request.method,
            request.url.path,
            client_ip(request),
            str(exc),
            exc_info=exc,
        )
        if settings.is_production:
            return None
        return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    @app.exception_handler(MiniBlogError)
    async def handle_miniblog_error(request: Request, exc: MiniBlogError):
        logger.log(
            exc.kind.log_level,
            "[%s] %s on %s %s: %s | context=%s",
            _request_id(request),
            exc.kind.name,
            request.method,
            request.url.path,
            exc.message,
            exc.context,
        )
        stack = None
        if exc.kind is ErrorKind.INTERNAL and not settings.is_production:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        return error_response(request, exc.status_code, exc.message, exc.errors(), stack)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        logger.warning(
            "[%s] Request validation failed on %s %s: %s",
            _request_id(request), request.method, request.url.path, errors,
        )
        return error_response(
            request, ErrorKind.VALIDATION.status_code, ErrorKind.VALIDATION.default_message, errors
        )

    @app.exception_handler(IntegrityError)
    async def handle_integrity_error(request: Request, exc: IntegrityError):
        if is_unique_violation(exc):
            conflict = conflict_from_integrity_error(exc)
            logger.warning(
                "[%s] Duplicate key on %s %s: %s",
                _request_id(request), request.method, request.url.path, conflict.message,
            )
            return error_response(request, conflict.status_code, conflict.message, conflict.errors())
        stack = log_unexpected(request, exc)
        return error_response(request, 500, ErrorKind.INTERNAL.default_message, stack=stack)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.url.path} not found"
        else:
            message = str(exc.detail)
        logger.warning(
            "[%s] HTTP %d on %s %s", _request_id(request), exc.status_code,
            request.method, request.url.path,
        )
        return error_response(request, exc.status_code, message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        stack = log_unexpected(request, exc)
        return error_response(request, 500, ErrorKind.INTERNAL.default_message, stack=stack)


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """
    Assembles the application.

    Args:
        settings: Defaults to the environment-derived settings.
        database: Defaults to a new Database for settings.database_url. Tests
                  pass one in to share an in-memory engine with fixtures.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Mini-Blog API",
        description=(
            "Users, posts, nested comments, likes, re-posts and @mentions "
            "behind a paginated JSON API."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database or Database(settings)

    # ── Middleware (last added runs first) ────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    prefix = settings.api_prefix
    app.include_router(auth.router, prefix=prefix)
    app.include_router(users.router, prefix=prefix)
    app.include_router(posts.router, prefix=prefix)
    app.include_router(comments.router, prefix=prefix)
    app.include_router(health.router, prefix=prefix)

    return app


app = create_app()
