"""
REST API Layer for Monthly Zen.

Provides:
- FastAPI application with CORS middleware
- Caller identity gate (X-User-ID forwarded by the auth gateway)
- Exception handlers mapping domain errors onto the response envelope
- API versioning under /api/v1 prefix

Status mapping:
    NotFoundError        -> 404 NOT_FOUND
    QuotaExceededError   -> 429 QUOTA_EXCEEDED
    ValidationError      -> 422 VALIDATION_ERROR
    DatabaseError        -> 503 SERVICE_UNAVAILABLE (retryable)
    anything else        -> 500 INTERNAL_ERROR
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.api.routes import router
from src.api.schemas import error_response
from src.config.settings import ZenSettings, get_settings
from src.lib.errors import (
    AUTH_REQUIRED,
    INTERNAL_ERROR,
    NOT_FOUND,
    QUOTA_EXCEEDED,
    SERVICE_UNAVAILABLE,
    VALIDATION_ERROR,
)
from src.lib.exceptions import (
    ConfigurationError,
    DatabaseError,
    NotFoundError,
    QuotaExceededError,
    ValidationError,
)
from src.lib.logging import setup_logging

logger = logging.getLogger(__name__)

_ALLOWED_HEADERS: list[str] = [
    "Content-Type",
    "Accept",
    "Accept-Language",
    "X-Request-ID",
    "X-User-ID",
]

# Paths that do NOT require a caller identity
_PUBLIC_PATHS: frozenset[str] = frozenset({
    "/health",
    "/api/v1/health",
    "/docs",
    "/redoc",
    "/openapi.json",
})


async def _auth_gate_dispatch(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Deny requests without a forwarded caller identity by default."""
    # CORS preflight (OPTIONS) must pass through
    if request.method == "OPTIONS":
        return await call_next(request)
    path = request.url.path.rstrip("/") or "/"
    if path not in _PUBLIC_PATHS:
        if not request.headers.get("x-user-id", "").strip():
            return JSONResponse(
                status_code=401,
                content=error_response(AUTH_REQUIRED),
            )
    return await call_next(request)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content=error_response(NOT_FOUND, str(exc) or None))

    @app.exception_handler(QuotaExceededError)
    async def quota_exceeded_handler(request: Request, exc: QuotaExceededError) -> JSONResponse:
        return JSONResponse(status_code=429, content=error_response(QUOTA_EXCEEDED, str(exc) or None))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content=error_response(VALIDATION_ERROR, str(exc) or None))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content=error_response(VALIDATION_ERROR, details={"errors": jsonable_encoder(exc.errors())}),
        )

    @app.exception_handler(DatabaseError)
    async def database_handler(request: Request, exc: DatabaseError) -> JSONResponse:
        logger.warning("Database unavailable on %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=503,
            content=error_response(SERVICE_UNAVAILABLE, details={"retryable": True}),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        code = AUTH_REQUIRED if exc.status_code == 401 else NOT_FOUND if exc.status_code == 404 else INTERNAL_ERROR
        return JSONResponse(
            status_code=exc.status_code,
            content=error_response(code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content=error_response(INTERNAL_ERROR))


def create_app(settings: ZenSettings | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Includes:
    - Structured logging setup
    - CORS middleware with origins from ZEN_CORS_ORIGINS
    - Caller identity gate
    - Exception handlers for the response envelope
    - API v1 router with all endpoints
    - Root-level health check for load balancer probes
    - Production: /docs and /redoc disabled

    Raises:
        ConfigurationError: If a wildcard CORS origin is configured in production.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="Monthly Zen",
        description="Monthly planning with quota-gated AI plans and behavioral insights",
        version="0.1.0",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
    )

    _register_exception_handlers(app)

    if settings.is_production and "*" in settings.cors_origins:
        raise ConfigurationError(
            "ZEN_CORS_ORIGINS contains wildcard '*' which is forbidden in production. "
            "Specify explicit origins instead."
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=_ALLOWED_HEADERS,
    )
    app.add_middleware(BaseHTTPMiddleware, dispatch=_auth_gate_dispatch)

    app.include_router(router)

    @app.get("/health")
    async def root_health_check() -> dict[str, str]:
        """Root health check for infrastructure probes."""
        return {"status": "ok"}

    return app


__all__ = ["create_app", "router"]
