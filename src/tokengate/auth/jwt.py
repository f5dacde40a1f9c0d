"""JWT token creation and verification.

Tokens are self-contained: {sub, iat, exp} signed with a secret key
(HS256 by default). Nothing is persisted; the validity window is
entirely described by the token itself.

parse_subject() surfaces *why* a token failed (expired, bad signature,
malformed). is_valid() collapses all of that to a boolean for callers
that only need a yes/no answer.
"""

import enum
import json
from datetime import datetime, timedelta, timezone

import jwt
from jwt.utils import base64url_decode

REQUIRED_CLAIMS = ["sub", "iat", "exp"]


class TokenFailure(str, enum.Enum):
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    MALFORMED = "malformed"


class TokenError(Exception):
    """Raised when a token cannot be turned into a subject."""

    kind: TokenFailure = TokenFailure.MALFORMED


class TokenExpired(TokenError):
    kind = TokenFailure.EXPIRED


class BadSignature(TokenError):
    kind = TokenFailure.BAD_SIGNATURE


class MalformedToken(TokenError):
    kind = TokenFailure.MALFORMED


def issue_token(
    subject: str,
    secret: str,
    ttl: timedelta,
    algorithm: str = "HS256",
) -> str:
    """Create a signed token for `subject`, valid from now until now + ttl."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def _only_signature_unreadable(token: str) -> bool:
    """Header and payload decode to JSON objects but the signature segment does not."""
    segments = token.split(".")
    if len(segments) != 3:
        return False
    try:
        header, payload = (json.loads(base64url_decode(s)) for s in segments[:2])
    except ValueError:
        return False
    if not (isinstance(header, dict) and isinstance(payload, dict)):
        return False
    try:
        base64url_decode(segments[2])
    except (TypeError, ValueError):
        return True
    return False


def parse_subject(token: str, secret: str, algorithm: str = "HS256") -> str:
    """Verify a token and return its subject.

    The signature is checked before any claim, so a tampered token that is
    also expired reports BadSignature, never TokenExpired. A signature
    segment that cannot be decoded at all is still a bad signature when the
    header and payload are intact.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpired("Token has expired")
    except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError):
        raise BadSignature("Token signature is invalid")
    except jwt.MissingRequiredClaimError as e:
        raise MalformedToken(f"Token is missing the '{e.claim}' claim")
    except jwt.DecodeError as e:
        if _only_signature_unreadable(token):
            raise BadSignature("Token signature is invalid")
        raise MalformedToken(f"Token is malformed: {e}")
    except jwt.InvalidTokenError as e:
        raise MalformedToken(f"Token is malformed: {e}")

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise MalformedToken("Token subject is empty")
    return subject


def is_valid(
    token: str,
    secret: str,
    expected_subject: str,
    algorithm: str = "HS256",
) -> bool:
    """True iff the token verifies, is unexpired and belongs to expected_subject."""
    try:
        return parse_subject(token, secret, algorithm) == expected_subject
    except TokenError:
        return False


class TokenCodec:
    """Key material and lifetime bound once at startup.

    Shared read-only across all requests.
    """

    def __init__(self, secret: str, ttl: timedelta, algorithm: str = "HS256"):
        self._secret = secret
        self.ttl = ttl
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings) -> "TokenCodec":
        return cls(
            secret=settings.jwt_secret,
            ttl=settings.access_token_ttl,
            algorithm=settings.jwt_algorithm,
        )

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self.ttl.total_seconds())

    def issue(self, subject: str) -> str:
        return issue_token(subject, self._secret, self.ttl, self.algorithm)

    def parse_subject(self, token: str) -> str:
        return parse_subject(token, self._secret, self.algorithm)

    def is_valid(self, token: str, expected_subject: str) -> bool:
        return is_valid(token, self._secret, expected_subject, self.algorithm)
