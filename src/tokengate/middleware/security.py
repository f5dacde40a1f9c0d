"""Hardening headers for an API that hands out bearer tokens.

Login responses carry tokens and /users/me carries identity data, so
nothing may be cached, sniffed or framed. The headers go on every
response, including the 401/403 bodies the route policy writes before
any handler runs.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

HARDENING_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    # Disables the legacy XSS auditor
    "X-XSS-Protection": "0",
    "Cache-Control": "no-cache, no-store, max-age=0, must-revalidate",
    "Pragma": "no-cache",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add HARDENING_HEADERS to every response, and HSTS over HTTPS."""

    def __init__(self, app: ASGIApp, hsts_max_age: int = 31536000):
        super().__init__(app)
        self.hsts = f"max-age={hsts_max_age}; includeSubDomains"

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(HARDENING_HEADERS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = self.hsts
        return response
