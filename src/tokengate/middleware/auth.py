"""Authentication middleware — runs the RequestGate for every request.

Installs the request's AuthOutcome on request.state.auth and always
forwards the request. Rejections are logged (and optionally echoed in
X-Token-* headers) but never turned into a response here.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from tokengate.auth.context import Authenticated, AuthOutcome, Rejected
from tokengate.auth.gate import RequestGate

log = structlog.get_logger()


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Attach the caller's identity (or the reason there is none) to the request."""

    def __init__(self, app: ASGIApp, gate: RequestGate, debug_headers: bool = False):
        super().__init__(app)
        self.gate = gate
        self.debug_headers = debug_headers

    async def dispatch(self, request: Request, call_next) -> Response:
        outcome = await self.gate.authenticate(
            request.headers.get("Authorization"),
            current=getattr(request.state, "auth", None),
        )
        request.state.auth = outcome

        if isinstance(outcome, Authenticated):
            structlog.contextvars.bind_contextvars(username=outcome.identity.username)
        elif isinstance(outcome, Rejected):
            log.info(
                "auth.token_rejected",
                reason=outcome.reason.value,
                detail=outcome.detail,
                path=request.url.path,
            )

        response: Response = await call_next(request)
        if self.debug_headers:
            _set_debug_headers(response, outcome)
        return response


def _set_debug_headers(response: Response, outcome: AuthOutcome) -> None:
    if isinstance(outcome, Authenticated):
        response.headers["X-Token-Valid"] = "true"
        response.headers["X-Token-User"] = outcome.identity.username
    elif isinstance(outcome, Rejected):
        response.headers["X-Token-Error"] = outcome.reason.value
    else:
        response.headers["X-Token-Status"] = "NOT_PROVIDED"
