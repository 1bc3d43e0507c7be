"""Permissive CORS handling for the browser client.

The web client calls the API from any origin, so every response carries the
same CORS headers, including error responses, and preflight requests are
answered directly with an empty body.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings


def cors_headers() -> dict[str, str]:
    """Headers attached to every response."""
    return {
        "Access-Control-Allow-Origin": settings.CORS_ALLOW_ORIGIN,
        "Access-Control-Allow-Headers": settings.CORS_ALLOW_HEADERS,
    }


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Answer preflight requests and add CORS headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=cors_headers())

        response = await call_next(request)
        response.headers.update(cors_headers())
        return response
