"""Pydantic schemas for login, signup and identity projections.

Separate request schemas (input) from read schemas (output). Wire names
are camelCase; snake_case field names are accepted on input too. The
password hash never appears in any read schema.
"""

import uuid
from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tokengate.auth.identity import Identity, Role


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Requests ───────────────────────────────────────────

class LoginRequest(CamelModel):
    identifier: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("identifier", "usernameOrEmail"),
    )
    secret: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("secret", "password"),
    )


class SignupRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: str = Field(..., max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    secret: str = Field(
        ...,
        min_length=6,
        max_length=72,
        validation_alias=AliasChoices("secret", "password"),
    )
    display_name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        validation_alias=AliasChoices("displayName", "display_name", "fullName"),
    )


# ─── Responses ──────────────────────────────────────────

class IdentityRead(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    display_name: str
    role: Role
    enabled: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_identity(cls, identity: Identity, **extra):
        return cls(
            id=identity.id,
            username=identity.username,
            email=identity.email,
            display_name=identity.display_name,
            role=identity.role,
            enabled=identity.enabled,
            created_at=identity.created_at,
            updated_at=identity.updated_at,
            **extra,
        )


class CurrentUserRead(IdentityRead):
    granted_roles: list[str]


class LoginResponse(CamelModel):
    token: str
    token_type: str = "Bearer"
    expires_in: int
    id: uuid.UUID
    username: str
    email: str
    display_name: str
    role: Role


class AvailabilityResponse(CamelModel):
    value: str
    available: bool
