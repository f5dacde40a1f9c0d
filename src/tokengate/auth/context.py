"""Request-scoped authentication outcome.

Each request gets exactly one AuthOutcome, stored on request.state.auth by
the authentication middleware and read by handlers. "No identity" is an
ordinary value (Unauthenticated or Rejected), not an exception.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Union

from starlette.requests import HTTPConnection

from tokengate.auth.identity import Identity, Role


class RejectReason(str, enum.Enum):
    EXPIRED = "EXPIRED"
    BAD_SIGNATURE = "INVALID_SIGNATURE"
    MALFORMED = "MALFORMED"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_DISABLED = "USER_DISABLED"
    INVALID = "INVALID"
    UNKNOWN = "UNKNOWN_ERROR"


REJECT_MESSAGES = {
    RejectReason.EXPIRED: "Token has expired",
    RejectReason.BAD_SIGNATURE: "Token signature is invalid",
    RejectReason.MALFORMED: "Token is malformed",
    RejectReason.USER_NOT_FOUND: "Token subject does not match any user",
    RejectReason.USER_DISABLED: "User account is disabled",
    RejectReason.INVALID: "Token is invalid",
    RejectReason.UNKNOWN: "Token could not be validated",
}


@dataclass(frozen=True)
class Unauthenticated:
    is_authenticated = False


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    detail: str = ""

    is_authenticated = False

    @property
    def message(self) -> str:
        return REJECT_MESSAGES[self.reason]


@dataclass(frozen=True)
class Authenticated:
    identity: Identity
    granted_roles: frozenset[str]

    is_authenticated = True

    def has_role(self, role: Union[Role, str]) -> bool:
        name = role.value if isinstance(role, Role) else role
        return f"ROLE_{name}" in self.granted_roles


AuthOutcome = Union[Unauthenticated, Rejected, Authenticated]

UNAUTHENTICATED = Unauthenticated()


def get_auth(conn: HTTPConnection) -> AuthOutcome:
    """The outcome installed for this request; Unauthenticated if the gate never ran."""
    return getattr(conn.state, "auth", UNAUTHENTICATED)
