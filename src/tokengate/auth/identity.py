"""Identity records and role derivation.

An Identity is a plain, immutable record of who a user is. What that user
may do is derived separately by granted_roles(), so the stored record never
doubles as its own authorization descriptor.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime


class Role(str, enum.Enum):
    USER = "USER"
    ADMIN = "ADMIN"


def granted_roles(role: Role) -> frozenset[str]:
    """Map a stored role to the authorities it grants."""
    return frozenset({f"ROLE_{Role(role).value}"})


@dataclass(frozen=True)
class NewIdentity:
    """Everything the store needs to create a user. The store assigns the rest."""

    username: str
    email: str
    password_hash: str
    display_name: str
    role: Role = Role.USER
    enabled: bool = True


@dataclass(frozen=True)
class Identity:
    id: uuid.UUID
    username: str
    email: str
    password_hash: str
    display_name: str
    role: Role
    enabled: bool
    created_at: datetime
    updated_at: datetime

    @property
    def granted_roles(self) -> frozenset[str]:
        return granted_roles(self.role)
