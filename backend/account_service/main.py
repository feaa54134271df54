"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Logging setup (stdlib + structlog share LOG_LEVEL)
- Exception handlers for API errors
- API v1 router mounting
- Health check endpoint
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from account_service.api.v1.router import router as v1_router
from account_service.core.config import settings
from account_service.core.database import dispose_engine
from account_service.core.errors import APIError, InternalError
from account_service.core.rate_limiting import limiter, rate_limit_exceeded_handler
from account_service.core.responses import ErrorDetail, ErrorResponse

logger = structlog.get_logger()


def configure_logging(level: str) -> None:
    """Apply LOG_LEVEL to stdlib logging and structlog."""
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: Credentials and tokens must never be cached
    - Content-Security-Policy: API returns no HTML
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "no-referrer"

        # Login responses carry bearer tokens
        if request.url.path.startswith("/api/"):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def _error_json(
    status_code: int,
    code: str,
    message: str,
    details: list[dict] | None = None,
) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump())


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render a domain error as {"error": {code, message, details}}."""
    return _error_json(exc.status_code, exc.code, exc.message, exc.details)


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed request bodies become 400 VALIDATION_ERROR.

    Only location, message and type are echoed back. Submitted values may
    be passwords.
    """
    problems = [
        {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in exc.errors()
    ]
    return _error_json(400, "VALIDATION_ERROR", "Request validation failed", problems)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure server-side and answer with an opaque 500."""
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))
    return api_error_handler(request, InternalError())


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Release pooled database connections on shutdown."""
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Build the account service application.

    Logging is configured here so that tests creating their own app get
    the same LOG_LEVEL handling as uvicorn.
    """
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Account Service API",
        version="1.0.0",
        description="User accounts, password auth and email verification",
        lifespan=lifespan,
    )

    # Starlette runs middleware LIFO: CORS is added last so preflights
    # are answered before anything else runs.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter

    app.include_router(v1_router, prefix="/api/v1")

    @app.get("/health")
    def health_check() -> dict:
        """Liveness probe (does not touch the database)."""
        return {"status": "healthy"}

    return app


# uvicorn account_service.main:app
app = create_app()
