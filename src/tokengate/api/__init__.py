"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Authentication is not attached per router: the route policy middleware
decides which paths need an identity, and role checks live on the
handlers that need them.
"""

from fastapi import APIRouter

from tokengate.api.auth import router as auth_router
from tokengate.api.health import router as health_router
from tokengate.api.samples import router as samples_router
from tokengate.api.users import router as users_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(users_router, tags=["users"])
api_router.include_router(samples_router, tags=["samples"])
