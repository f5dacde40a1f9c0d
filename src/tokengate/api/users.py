"""User API — the caller's own identity and availability checks.

All routes here are protected by the route policy; get_current_user is
declared anyway so the handlers have the identity in hand.
"""

from fastapi import APIRouter, Depends

from tokengate.auth.context import Authenticated
from tokengate.auth.dependencies import get_auth_service, get_current_user
from tokengate.auth.service import AuthService
from tokengate.schemas.auth import AvailabilityResponse, CurrentUserRead

router = APIRouter()


@router.get("/users/me", response_model=CurrentUserRead)
async def get_me(auth: Authenticated = Depends(get_current_user)):
    """Get the current authenticated user's info."""
    return CurrentUserRead.from_identity(
        auth.identity, granted_roles=sorted(auth.granted_roles)
    )


@router.get("/check-username/{username}", response_model=AvailabilityResponse)
async def check_username(
    username: str,
    _: Authenticated = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return AvailabilityResponse(
        value=username, available=await service.username_available(username)
    )


@router.get("/check-email/{email}", response_model=AvailabilityResponse)
async def check_email(
    email: str,
    _: Authenticated = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return AvailabilityResponse(value=email, available=await service.email_available(email))
