"""Per-request authentication gate.

Turns an Authorization header into an AuthOutcome:

    NoToken      -> Unauthenticated
    "Bearer "    -> Rejected(MALFORMED)     (scheme present, token blank)
    TokenPresent -> parse subject -> resolve identity -> re-validate
                 -> Authenticated            (all checks pass)
                 -> Rejected(reason)         (any check fails)

The gate never raises and never produces a response. Whether an
unauthenticated request may proceed is RoutePolicy's decision, made later.
Every branch that does not positively reach Authenticated yields an
outcome with no identity.
"""

from typing import Optional

import structlog

from tokengate.auth.context import (
    UNAUTHENTICATED,
    Authenticated,
    AuthOutcome,
    Rejected,
    RejectReason,
)
from tokengate.auth.jwt import TokenCodec, TokenError, TokenFailure
from tokengate.auth.store import StoreFactory

log = structlog.get_logger()

BEARER_PREFIX = "Bearer "

_FAILURE_REASONS = {
    TokenFailure.EXPIRED: RejectReason.EXPIRED,
    TokenFailure.BAD_SIGNATURE: RejectReason.BAD_SIGNATURE,
    TokenFailure.MALFORMED: RejectReason.MALFORMED,
}


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Return the token from a 'Bearer <token>' header.

    None when there is no bearer credential at all; an empty string when
    the scheme is present but the token is blank.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX):].strip()


class RequestGate:
    """Validates bearer tokens against the codec and the credential store."""

    def __init__(self, codec: TokenCodec, store_factory: StoreFactory):
        self.codec = codec
        self.store_factory = store_factory

    async def authenticate(
        self,
        authorization: Optional[str],
        current: Optional[AuthOutcome] = None,
    ) -> AuthOutcome:
        # Re-entrant pass: an identity already installed for this request wins
        if isinstance(current, Authenticated):
            return current

        token = extract_bearer_token(authorization)
        if token is None:
            return UNAUTHENTICATED
        if not token:
            return Rejected(RejectReason.MALFORMED, detail="Bearer token is empty")

        try:
            return await self._validate(token)
        except Exception as e:
            log.warning("auth.gate_error", error_type=type(e).__name__, error=str(e))
            return Rejected(RejectReason.UNKNOWN, detail=type(e).__name__)

    async def _validate(self, token: str) -> AuthOutcome:
        try:
            subject = self.codec.parse_subject(token)
        except TokenError as e:
            return Rejected(_FAILURE_REASONS[e.kind], detail=str(e))

        async with self.store_factory() as store:
            identity = await store.find_by_username(subject)

        if identity is None:
            return Rejected(RejectReason.USER_NOT_FOUND)
        if not identity.enabled:
            return Rejected(RejectReason.USER_DISABLED)

        if not self.codec.is_valid(token, identity.username):
            return Rejected(RejectReason.INVALID)

        return Authenticated(identity=identity, granted_roles=identity.granted_roles)
