"""Security headers middleware for FastAPI.

Adds the OWASP recommended response headers that still matter for a JSON API:
- Clickjacking (X-Frame-Options)
- MIME type sniffing (X-Content-Type-Options)
- Referrer leakage (Referrer-Policy)
- Protocol downgrade (Strict-Transport-Security)

References:
- https://owasp.org/www-project-secure-headers/
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Add security headers to the response."""
        response = await call_next(request)

        if not settings.SECURITY_HEADERS_ENABLED:
            return response

        response.headers["X-Frame-Options"] = settings.SECURITY_X_FRAME_OPTIONS
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = settings.SECURITY_REFERRER_POLICY

        # Only behind HTTPS
        if settings.SECURITY_HSTS_ENABLED:
            response.headers["Strict-Transport-Security"] = (
                f"max-age={settings.SECURITY_HSTS_MAX_AGE}; includeSubDomains"
            )

        # Deletion state is per-user; never let a proxy cache it
        if request.url.path.startswith("/api/v1/"):
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, private"
            response.headers["Pragma"] = "no-cache"

        return response
