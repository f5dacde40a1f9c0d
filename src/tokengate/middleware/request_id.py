"""Request ID middleware — correlates auth log lines for one request.

The gate, the route policy and the login service all log through
structlog; binding request_id (plus method and path) here means every
auth.* event for a request can be joined up, including the 401s that
never reach a handler. The ID is echoed in X-Request-ID.

An incoming X-Request-ID is reused only when it looks like an ID. It is
written verbatim into every log line for the request, so anything else
is replaced by a fresh UUID.
"""

import re
from typing import Optional
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_TRUSTED_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def resolve_request_id(incoming: Optional[str]) -> str:
    if incoming and _TRUSTED_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a per-request ID to the log context and echo it back."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))

        # Nothing from a previous request on this task may leak into the context
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response: Response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response
