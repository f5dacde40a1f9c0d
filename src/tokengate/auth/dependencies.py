"""FastAPI auth dependencies.

Used as Depends() in route handlers. Nothing here validates tokens: the
authentication middleware already did that and left an AuthOutcome on
request.state. These dependencies only read it.

    get_current_user      — 401 unless the request is authenticated
    require_roles(ADMIN)  — 401 if anonymous, 403 if the role is missing
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tokengate.auth.context import Authenticated, Rejected, get_auth
from tokengate.auth.identity import Role
from tokengate.auth.service import AuthService
from tokengate.auth.store import CredentialStore, SqlCredentialStore
from tokengate.db.engine import get_db
from tokengate.errors import Forbidden, Unauthorized


async def get_store(db: AsyncSession = Depends(get_db)) -> CredentialStore:
    return SqlCredentialStore(db)


async def get_auth_service(
    request: Request,
    store: CredentialStore = Depends(get_store),
) -> AuthService:
    return AuthService(store, request.app.state.hasher, request.app.state.codec)


def require_roles(*roles: Role):
    """Build a dependency that admits authenticated callers holding any of `roles`.

    With no roles, any authenticated caller is admitted.
    """

    async def dependency(request: Request) -> Authenticated:
        outcome = get_auth(request)
        if not isinstance(outcome, Authenticated):
            if isinstance(outcome, Rejected):
                raise Unauthorized(outcome.message)
            raise Unauthorized()
        if roles and not any(outcome.has_role(role) for role in roles):
            raise Forbidden()
        return outcome

    return dependency


get_current_user = require_roles()
