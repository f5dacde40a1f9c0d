"""Route policy enforcement.

Runs after the authentication middleware. Protected paths without an
authenticated identity get a structured 401 and the handler is never
called. Public paths always pass through, whatever the gate decided.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tokengate.auth.context import Authenticated, Rejected, get_auth
from tokengate.auth.policy import Access, RoutePolicy
from tokengate.errors import Unauthorized, error_response

log = structlog.get_logger()


class RoutePolicyMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to protected routes (fail-closed)."""

    def __init__(self, app: ASGIApp, policy: RoutePolicy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        # CORS preflight carries no credentials
        if request.method == "OPTIONS" or self.policy.classify(path) is Access.PUBLIC:
            return await call_next(request)

        outcome = get_auth(request)
        if isinstance(outcome, Authenticated):
            return await call_next(request)

        error = Unauthorized(outcome.message) if isinstance(outcome, Rejected) else Unauthorized()
        log.info("auth.access_denied", path=path, status=401)
        return error_response(error, path)
