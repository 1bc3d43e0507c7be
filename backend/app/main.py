import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from app.api.routes import account_deletion
from app.core.config import settings
from app.core.cors import CORSHeadersMiddleware, cors_headers
from app.core.logging import (
    generate_request_id,
    get_logger,
    set_request_id,
    setup_logging,
)
from app.core.rate_limiting import get_limiter
from app.core.security_headers import SecurityHeadersMiddleware
from app.services.account_deletion import AccountDeletionError

# Configure logging before anything else
setup_logging(
    level=settings.LOG_LEVEL,
    debug=settings.DEBUG,
    json_logs=settings.LOG_JSON_FORMAT,
)

logger = get_logger(__name__)

if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.celery import CeleryIntegration
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            CeleryIntegration(),
        ],
        # User ids are personal data
        send_default_pii=False,
    )

app = FastAPI(
    title="Huddle API",
    description="Account lifecycle backend for the Huddle social network",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

limiter = get_limiter()
app.state.limiter = limiter


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    """Handle rate limit exceeded errors with CORS headers."""
    rate_exc = exc if isinstance(exc, RateLimitExceeded) else None
    detail = str(rate_exc.detail) if rate_exc else "Rate limit exceeded"

    return JSONResponse(
        status_code=429,
        content={"error": f"Rate limit exceeded: {detail}"},
        headers=cors_headers(),
    )


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


@app.exception_handler(AccountDeletionError)
async def account_deletion_error_handler(request: Request, exc: AccountDeletionError) -> JSONResponse:
    """Turn deletion workflow errors into ``{"error": ...}`` responses."""
    if exc.status_code >= 500:
        logger.error(f"Account deletion failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_body(),
        headers=cors_headers(),
    )


# Global exception handler to ensure CORS headers on errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all uncaught exceptions and ensure CORS headers are present."""
    logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

    # Runs outside the middleware stack, so CORS headers are added here
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) if settings.DEBUG else "An unexpected error occurred"},
        headers=cors_headers(),
    )


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request correlation IDs for log tracing."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Add request ID to context and response headers."""
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        set_request_id(request_id)

        logger.info(f"Request started: {request.method} {request.url.path}")

        response = await call_next(request)

        response.headers["X-Request-ID"] = request_id

        logger.info(
            f"Request completed: {request.method} {request.url.path} - {response.status_code}",
        )

        return response


# Last added runs first: CORS answers preflight before anything else
app.add_middleware(RequestIDMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CORSHeadersMiddleware)

app.include_router(account_deletion.router, prefix="/api/v1")


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Huddle API", "docs": "/docs"}


@app.get("/health/ready")
def readiness_check() -> JSONResponse:
    health = settings.check_health()
    status_code = 200 if health["status"] == "healthy" else 503
    return JSONResponse(status_code=status_code, content=health)
