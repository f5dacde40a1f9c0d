"""Sample content routes for exercising role-based access.

/test/** is public in the route policy, so these handlers enforce roles
themselves: anonymous callers get 401, callers without the role get 403.
"""

from fastapi import APIRouter, Depends

from tokengate.auth.context import Authenticated
from tokengate.auth.dependencies import require_roles
from tokengate.auth.identity import Role

router = APIRouter(prefix="/test")


@router.get("/all")
async def public_content():
    return {"content": "Public content."}


@router.get("/user")
async def user_content(auth: Authenticated = Depends(require_roles(Role.USER, Role.ADMIN))):
    return {"content": "User content.", "username": auth.identity.username}


@router.get("/admin")
async def admin_content(auth: Authenticated = Depends(require_roles(Role.ADMIN))):
    return {"content": "Admin board.", "username": auth.identity.username}
