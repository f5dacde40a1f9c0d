"""Test fixtures — a fresh SQLite database and app per test.

Each test gets its own database file under tmp_path, the app built with
create_app(settings, session_factory), and an httpx AsyncClient talking to
it in-process through ASGITransport. bcrypt runs with 4 rounds so hashing
stays fast.

FakeStore is an in-memory CredentialStore that records every call, for
unit tests of the service and the gate that need no database.
"""

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from tokengate.auth.identity import Identity, NewIdentity, Role
from tokengate.auth.jwt import TokenCodec
from tokengate.auth.password import BcryptHasher
from tokengate.auth.store import SqlCredentialStore
from tokengate.config import Settings
from tokengate.db.engine import build_session_factory, init_schema
from tokengate.main import create_app

TEST_SECRET = "test-secret-for-the-tokengate-suite-0123456789"
PASSWORD = "password_123"


class FakeStore:
    """In-memory CredentialStore that records calls."""

    def __init__(self, identities=()):
        self.users = {i.username: i for i in identities}
        self.calls: list[tuple[str, str]] = []

    async def find_by_identifier(self, identifier: str) -> Optional[Identity]:
        self.calls.append(("find_by_identifier", identifier))
        for identity in self.users.values():
            if identifier in (identity.username, identity.email):
                return identity
        return None

    async def find_by_username(self, username: str) -> Optional[Identity]:
        self.calls.append(("find_by_username", username))
        return self.users.get(username)

    async def exists_by_username(self, username: str) -> bool:
        self.calls.append(("exists_by_username", username))
        return username in self.users

    async def exists_by_email(self, email: str) -> bool:
        self.calls.append(("exists_by_email", email))
        return any(i.email == email for i in self.users.values())

    async def create(self, new: NewIdentity) -> Identity:
        self.calls.append(("create", new.username))
        now = datetime.now(timezone.utc)
        identity = Identity(
            id=uuid.uuid4(),
            username=new.username,
            email=new.email,
            password_hash=new.password_hash,
            display_name=new.display_name,
            role=new.role,
            enabled=new.enabled,
            created_at=now,
            updated_at=now,
        )
        self.users[identity.username] = identity
        return identity

    def factory(self):
        @asynccontextmanager
        async def open_store():
            yield self

        return open_store


def make_identity(
    username: str,
    password_hash: str = "",
    role: Role = Role.USER,
    enabled: bool = True,
) -> Identity:
    now = datetime.now(timezone.utc)
    return Identity(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@example.com",
        password_hash=password_hash,
        display_name=username.title(),
        role=role,
        enabled=enabled,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture()
def settings():
    return Settings(
        jwt_secret=TEST_SECRET,
        access_token_expire_minutes=30,
        bcrypt_rounds=4,
        token_debug_headers=True,
        auto_create_schema=False,
    )


@pytest.fixture()
def codec(settings):
    return TokenCodec.from_settings(settings)


@pytest.fixture()
def hasher():
    return BcryptHasher(rounds=4)


@pytest_asyncio.fixture()
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tokengate.db'}")
    await init_schema(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


@pytest.fixture()
def app(settings, session_factory):
    return create_app(settings=settings, session_factory=session_factory)


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def make_user(session_factory, hasher):
    """Create a user straight in the database. Returns the Identity."""

    async def _make(
        username: str,
        password: str = PASSWORD,
        role: Role = Role.USER,
        enabled: bool = True,
    ) -> Identity:
        async with session_factory() as session:
            return await SqlCredentialStore(session).create(
                NewIdentity(
                    username=username,
                    email=f"{username}@example.com",
                    password_hash=hasher.hash(password),
                    display_name=username.title(),
                    role=role,
                    enabled=enabled,
                )
            )

    return _make


@pytest.fixture()
def token_for(codec):
    def _token(username: str) -> str:
        return codec.issue(username)

    return _token


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
