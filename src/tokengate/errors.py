"""Application errors and their JSON rendering.

Every error that reaches the HTTP boundary is rendered with the same
machine-readable shape:

    {"timestamp": ..., "status": 401, "error": "Unauthorized",
     "message": ..., "path": "/api/users/me"}

Messages are stable strings; internal exception text never leaks to
clients.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger()

INTERNAL_ERROR = "An internal error occurred. Please try again later."
FULL_AUTH_REQUIRED = "Full authentication is required to access this resource"
ACCESS_DENIED = "Access denied. You don't have permission to access this resource."


class ApiError(Exception):
    """Base for errors surfaced to the caller as structured responses."""

    status_code = 500
    error = "Internal Server Error"
    message = INTERNAL_ERROR

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(ApiError):
    """Unknown identifier, wrong password or disabled account. One message for all three."""

    status_code = 401
    error = "Unauthorized"
    message = "Invalid username/email or password"


class RegistrationConflict(ApiError):
    status_code = 409
    error = "Conflict"


class UsernameTaken(RegistrationConflict):
    message = "Username is already taken!"


class EmailTaken(RegistrationConflict):
    message = "Email is already taken!"


class Unauthorized(ApiError):
    status_code = 401
    error = "Unauthorized"
    message = FULL_AUTH_REQUIRED


class Forbidden(ApiError):
    status_code = 403
    error = "Forbidden"
    message = ACCESS_DENIED


def error_body(status: int, error: str, message: str, path: str) -> dict:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status,
        "error": error,
        "message": message,
        "path": path,
    }


def error_response(exc: ApiError, path: str) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.status_code, exc.error, exc.message, path),
        headers=headers,
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the ApiError and catch-all handlers on the app."""

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError):
        return error_response(exc, request.url.path)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        error_id = str(uuid.uuid4())[:8]
        log.error(
            "internal_error",
            error_id=error_id,
            path=request.url.path,
            error_type=type(exc).__name__,
            error_message=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=error_body(
                500,
                "Internal Server Error",
                f"{INTERNAL_ERROR} (ref: {error_id})",
                request.url.path,
            ),
        )
