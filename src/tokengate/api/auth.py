"""Auth API — login and signup.

- POST /auth/login  → identifier (username or email) + secret → bearer token
- POST /auth/signup → create a USER account

Both routes are public in the route policy. Failures are ApiErrors and
are rendered by the app's error handler as structured JSON.
"""

from fastapi import APIRouter, Depends

from tokengate.auth.dependencies import get_auth_service
from tokengate.auth.service import AuthService, Credentials, Signup
from tokengate.schemas.auth import (
    IdentityRead,
    LoginRequest,
    LoginResponse,
    SignupRequest,
)

router = APIRouter(prefix="/auth")


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Verify credentials and issue a bearer token."""
    result = await service.login(Credentials(identifier=body.identifier, secret=body.secret))
    identity = result.identity
    return LoginResponse(
        token=result.token,
        token_type=result.token_type,
        expires_in=result.expires_in,
        id=identity.id,
        username=identity.username,
        email=identity.email,
        display_name=identity.display_name,
        role=identity.role,
    )


@router.post("/signup", response_model=IdentityRead)
async def signup(body: SignupRequest, service: AuthService = Depends(get_auth_service)):
    """Create a new user account (role USER)."""
    identity = await service.register(
        Signup(
            username=body.username,
            email=body.email,
            secret=body.secret,
            display_name=body.display_name,
        )
    )
    return IdentityRead.from_identity(identity)
