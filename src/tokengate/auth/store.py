"""Credential store — where identities live.

The auth core only sees the CredentialStore protocol: lookups that return
an Identity or None, existence checks, and create(). SqlCredentialStore is
the SQLAlchemy implementation the service runs with.
"""

from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable, Optional, Protocol

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokengate.auth.identity import Identity, NewIdentity, Role
from tokengate.db.models import User
from tokengate.errors import EmailTaken, UsernameTaken


class CredentialStore(Protocol):
    async def find_by_identifier(self, identifier: str) -> Optional[Identity]:
        """Look up by username or email."""

    async def find_by_username(self, username: str) -> Optional[Identity]: ...

    async def exists_by_username(self, username: str) -> bool: ...

    async def exists_by_email(self, email: str) -> bool: ...

    async def create(self, new: NewIdentity) -> Identity:
        """Persist a new identity, assigning id and timestamps."""


StoreFactory = Callable[[], AsyncContextManager[CredentialStore]]


def _to_identity(user: User) -> Identity:
    return Identity(
        id=user.id,
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        display_name=user.display_name,
        role=Role(user.role),
        enabled=user.enabled,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


class SqlCredentialStore:
    """CredentialStore backed by the users table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_identifier(self, identifier: str) -> Optional[Identity]:
        q = select(User).where(
            or_(User.username == identifier, User.email == identifier)
        )
        result = await self.db.execute(q)
        user = result.scalars().first()
        return _to_identity(user) if user else None

    async def find_by_username(self, username: str) -> Optional[Identity]:
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalars().first()
        return _to_identity(user) if user else None

    async def exists_by_username(self, username: str) -> bool:
        return bool(
            await self.db.scalar(select(exists().where(User.username == username)))
        )

    async def exists_by_email(self, email: str) -> bool:
        return bool(await self.db.scalar(select(exists().where(User.email == email))))

    async def create(self, new: NewIdentity) -> Identity:
        user = User(
            username=new.username,
            email=new.email,
            password_hash=new.password_hash,
            display_name=new.display_name,
            role=Role(new.role).value,
            enabled=new.enabled,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent signup; report which field collided
            await self.db.rollback()
            if await self.exists_by_username(new.username):
                raise UsernameTaken()
            raise EmailTaken()
        await self.db.refresh(user)
        return _to_identity(user)


def sql_store_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> StoreFactory:
    """Build a factory that opens a short-lived session-backed store."""

    @asynccontextmanager
    async def open_store() -> AsyncIterator[CredentialStore]:
        async with session_factory() as session:
            yield SqlCredentialStore(session)

    return open_store
