"""Password hashing utilities.

bcrypt includes a random salt automatically and produces hashes starting
with "$2b$". Passwords are truncated to 72 bytes (bcrypt's limit).
"""

from typing import Protocol

import bcrypt


class PasswordHasher(Protocol):
    # Verified against when a login names no known user, so both paths cost the same
    dummy_hash: str

    def hash(self, password: str) -> str: ...

    def verify(self, password: str, password_hash: str) -> bool: ...


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt (work factor 12 ≈ 100ms by default)."""
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash. Unparseable hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError):
        return False


class BcryptHasher:
    """PasswordHasher implementation used by the service."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds
        self.dummy_hash = hash_password("tokengate-dummy-password", rounds)

    def hash(self, password: str) -> str:
        return hash_password(password, self.rounds)

    def verify(self, password: str, password_hash: str) -> bool:
        return verify_password(password, password_hash)
