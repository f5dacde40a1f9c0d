"""FastAPI application factory.

App factory pattern — create_app() returns a configured FastAPI instance.
Everything shared between requests (settings, token codec, password
hasher, route policy, session factory) is built here once and stored on
app.state, read-only for the life of the process.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokengate import __version__
from tokengate.api import api_router
from tokengate.auth.gate import RequestGate
from tokengate.auth.jwt import TokenCodec
from tokengate.auth.password import BcryptHasher
from tokengate.auth.policy import RoutePolicy, default_policy
from tokengate.auth.store import sql_store_factory
from tokengate.config import Settings
from tokengate.config import settings as default_settings
from tokengate.db.engine import build_engine, build_session_factory, init_schema
from tokengate.errors import register_error_handlers
from tokengate.log import configure_logging
from tokengate.middleware.auth import AuthenticationMiddleware
from tokengate.middleware.policy import RoutePolicyMiddleware
from tokengate.middleware.request_id import RequestIdMiddleware
from tokengate.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Anything before `yield` runs at startup, after `yield` runs at shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "tokengate.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        token_ttl_minutes=settings.access_token_expire_minutes,
    )

    engine = app.state.engine
    if engine is not None and settings.auto_create_schema:
        await init_schema(engine)
        logger.info("tokengate.schema_ready")

    yield

    logger.info("tokengate.shutdown")
    if engine is not None:
        await engine.dispose()


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    policy: Optional[RoutePolicy] = None,
) -> FastAPI:
    """Build and return the FastAPI application.

    Tests pass their own settings and session factory; when a session
    factory is given, the caller owns the engine and its schema.
    """
    settings = settings or default_settings
    configure_logging(settings)

    engine = None
    if session_factory is None:
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)

    codec = TokenCodec.from_settings(settings)
    policy = policy or default_policy()
    gate = RequestGate(codec, sql_store_factory(session_factory))

    app = FastAPI(
        title="tokengate",
        description="Stateless bearer-token authentication service",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.codec = codec
    app.state.hasher = BcryptHasher(rounds=settings.bcrypt_rounds)
    app.state.policy = policy

    register_error_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → Security → Authentication → RoutePolicy → handler
    app.add_middleware(RoutePolicyMiddleware, policy=policy)
    app.add_middleware(
        AuthenticationMiddleware,
        gate=gate,
        debug_headers=settings.token_debug_headers,
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts_max_age=settings.hsts_max_age)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app


# Default app instance (used by uvicorn: tokengate.main:app)
app = create_app()
