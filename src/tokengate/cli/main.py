"""tokengate CLI — run the server, manage users, issue and inspect tokens.

Usage:
    tokengate serve                                   # Run the API with uvicorn
    tokengate init-db                                 # Create the users table
    tokengate create-user root root@example.com --role ADMIN
    tokengate issue-token alice                       # Sign a token with the configured key
    tokengate inspect-token eyJhbGciOi...             # Show subject or failure kind
    tokengate login alice                             # Login against a running server
    tokengate whoami --token eyJhbGciOi...            # Ask a running server who you are
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from datetime import timedelta
from typing import Optional

import click
import httpx

from tokengate.auth.identity import Role
from tokengate.auth.jwt import TokenCodec, TokenError, issue_token, parse_subject
from tokengate.auth.password import BcryptHasher
from tokengate.auth.service import AuthService, Signup
from tokengate.auth.store import SqlCredentialStore
from tokengate.config import settings
from tokengate.errors import ApiError

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("TOKENGATE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at a running tokengate server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


def _run(coro):
    """Run an async coroutine from a synchronous click handler.

    Handles nested event loops (e.g. click's CliRunner inside an async
    test) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _fail(message: str) -> None:
    click.secho(f"Error: {message}", fg="red", err=True)
    sys.exit(1)


@click.group()
def main():
    """tokengate — stateless bearer-token authentication."""


# ---------------------------------------------------------------------------
# Server & database
# ---------------------------------------------------------------------------


@main.command()
@click.option("--host", default=None, help="Bind address (default: TOKENGATE_HOST)")
@click.option("--port", default=None, type=int, help="Port (default: TOKENGATE_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "tokengate.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create the database schema."""
    _run(_init_db_impl())
    click.secho("Schema ready.", fg="green")


async def _init_db_impl():
    from tokengate.db.engine import build_engine, init_schema

    engine = build_engine(settings)
    try:
        await init_schema(engine)
    finally:
        await engine.dispose()


@main.command("create-user")
@click.argument("username")
@click.argument("email")
@click.option("--display-name", default=None, help="Defaults to the username")
@click.option(
    "--role",
    type=click.Choice([r.value for r in Role]),
    default=Role.USER.value,
    show_default=True,
)
@click.password_option("--password", help="Prompted for when omitted")
def create_user(username: str, email: str, display_name: Optional[str], role: str, password: str):
    """Create a user directly in the store (the only way to make an ADMIN)."""
    try:
        identity = _run(
            _create_user_impl(
                Signup(
                    username=username,
                    email=email,
                    secret=password,
                    display_name=display_name or username,
                ),
                Role(role),
            )
        )
    except ApiError as e:
        _fail(e.message)
        return
    click.secho(f"Created {identity.role.value} {identity.username} ({identity.id})", fg="green")


async def _create_user_impl(signup: Signup, role: Role):
    from tokengate.db.engine import build_engine, build_session_factory, init_schema

    engine = build_engine(settings)
    try:
        await init_schema(engine)
        async with build_session_factory(engine)() as session:
            service = AuthService(
                SqlCredentialStore(session),
                BcryptHasher(rounds=settings.bcrypt_rounds),
                TokenCodec.from_settings(settings),
            )
            return await service.register(signup, role=role)
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# Tokens (offline, using the configured key)
# ---------------------------------------------------------------------------


@main.command("issue-token")
@click.argument("subject")
@click.option("--ttl-minutes", type=int, default=None, help="Default: TOKENGATE_ACCESS_TOKEN_EXPIRE_MINUTES")
def issue_token_cmd(subject: str, ttl_minutes: Optional[int]):
    """Sign a token for SUBJECT (a username)."""
    ttl = (
        timedelta(minutes=ttl_minutes)
        if ttl_minutes is not None
        else settings.access_token_ttl
    )
    click.echo(issue_token(subject, settings.jwt_secret, ttl, settings.jwt_algorithm))


@main.command("inspect-token")
@click.argument("token")
def inspect_token(token: str):
    """Verify TOKEN with the configured key and print its subject."""
    try:
        subject = parse_subject(token, settings.jwt_secret, settings.jwt_algorithm)
    except TokenError as e:
        click.secho(f"{e.kind.value}: {e}", fg="red", err=True)
        sys.exit(1)
    click.echo(subject)


# ---------------------------------------------------------------------------
# Remote (talks to a running server)
# ---------------------------------------------------------------------------


@main.command()
@click.argument("identifier")
@click.password_option("--secret", confirmation_prompt=False, help="Prompted for when omitted")
def login(identifier: str, secret: str):
    """Log in as IDENTIFIER (username or email) and print the token."""
    _run(_login_impl(identifier, secret))


async def _login_impl(identifier: str, secret: str):
    async with _client() as client:
        resp = await client.post(
            "/api/auth/login", json={"identifier": identifier, "secret": secret}
        )
    if resp.status_code != 200:
        _fail(resp.json().get("message", resp.text))
    click.echo(resp.json()["token"])


@main.command()
@click.option("--token", envvar="TOKENGATE_TOKEN", required=True, help="Bearer token (or TOKENGATE_TOKEN)")
def whoami(token: str):
    """Show the identity a running server resolves TOKEN to."""
    _run(_whoami_impl(token))


async def _whoami_impl(token: str):
    async with _client() as client:
        resp = await client.get(
            "/api/users/me", headers={"Authorization": f"Bearer {token}"}
        )
    if resp.status_code != 200:
        _fail(resp.json().get("message", resp.text))
    click.echo(_pretty_json(resp.json()))


if __name__ == "__main__":
    main()
