"""Auth service — credential verification, token issuance, registration.

Service layer separates business logic from HTTP routing: routes build an
AuthService from the request's store and call it; the CLI does the same
without HTTP.

Login failures are uniform on purpose. An unknown identifier, a disabled
account and a wrong password all raise the same InvalidCredentials with
the same message, and an unknown identifier still pays for one bcrypt
check against a dummy hash.
"""

from dataclasses import dataclass

import structlog

from tokengate.auth.identity import Identity, NewIdentity, Role
from tokengate.auth.jwt import TokenCodec
from tokengate.auth.password import PasswordHasher
from tokengate.auth.store import CredentialStore
from tokengate.errors import EmailTaken, InvalidCredentials, UsernameTaken

log = structlog.get_logger()


@dataclass(frozen=True)
class Credentials:
    identifier: str  # username or email
    secret: str


@dataclass(frozen=True)
class Signup:
    username: str
    email: str
    secret: str
    display_name: str


@dataclass(frozen=True)
class LoginResult:
    token: str
    expires_in: int
    identity: Identity
    token_type: str = "Bearer"


class AuthService:
    """Business logic for login and signup."""

    def __init__(self, store: CredentialStore, hasher: PasswordHasher, codec: TokenCodec):
        self.store = store
        self.hasher = hasher
        self.codec = codec

    async def login(self, credentials: Credentials) -> LoginResult:
        identity = await self.store.find_by_identifier(credentials.identifier)

        if identity is None:
            self.hasher.verify(credentials.secret, self.hasher.dummy_hash)
            raise self._rejected(credentials)

        password_ok = self.hasher.verify(credentials.secret, identity.password_hash)
        if not password_ok or not identity.enabled:
            raise self._rejected(credentials)

        token = self.codec.issue(identity.username)
        log.info("auth.login_succeeded", username=identity.username)
        return LoginResult(token=token, expires_in=self.codec.expires_in, identity=identity)

    def _rejected(self, credentials: Credentials) -> InvalidCredentials:
        log.info("auth.login_failed", identifier=credentials.identifier)
        return InvalidCredentials()

    async def register(self, signup: Signup, role: Role = Role.USER) -> Identity:
        """Create an account. Username conflicts are checked before email conflicts."""
        if await self.store.exists_by_username(signup.username):
            log.info("auth.register_conflict", field="username")
            raise UsernameTaken()

        if await self.store.exists_by_email(signup.email):
            log.info("auth.register_conflict", field="email")
            raise EmailTaken()

        identity = await self.store.create(
            NewIdentity(
                username=signup.username,
                email=signup.email,
                password_hash=self.hasher.hash(signup.secret),
                display_name=signup.display_name,
                role=role,
                enabled=True,
            )
        )
        log.info("auth.registered", username=identity.username, role=identity.role.value)
        return identity

    async def username_available(self, username: str) -> bool:
        return not await self.store.exists_by_username(username)

    async def email_available(self, email: str) -> bool:
        return not await self.store.exists_by_email(email)
