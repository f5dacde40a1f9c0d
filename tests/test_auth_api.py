"""Auth API tests — signup, login, and the gate + route policy end to end.

Uses the real middleware stack against a per-test SQLite database.
"""

import asyncio
from datetime import timedelta

import pytest

from conftest import PASSWORD, bearer
from tokengate.auth.identity import Role
from tokengate.auth.jwt import issue_token

ERROR_KEYS = {"timestamp", "status", "error", "message", "path"}


def signup_body(name: str, **overrides) -> dict:
    body = {
        "username": name,
        "email": f"{name}@example.com",
        "secret": "secure_password_123",
        "displayName": f"{name.title()} User",
    }
    body.update(overrides)
    return body


# ═══════════════════════════════════════════════════════════
# Signup
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_signup_creates_user(client):
    r = await client.post("/api/auth/signup", json=signup_body("alice"))
    assert r.status_code == 200
    user = r.json()
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["displayName"] == "Alice User"
    assert user["role"] == "USER"
    assert user["enabled"] is True
    assert "id" in user and "createdAt" in user and "updatedAt" in user
    assert not any("password" in key.lower() or "hash" in key.lower() for key in user)


@pytest.mark.asyncio
async def test_signup_accepts_legacy_field_names(client):
    r = await client.post(
        "/api/auth/signup",
        json={
            "username": "legacy",
            "email": "legacy@example.com",
            "password": "secure_password_123",
            "fullName": "Legacy Client",
        },
    )
    assert r.status_code == 200
    assert r.json()["displayName"] == "Legacy Client"


@pytest.mark.asyncio
async def test_signup_duplicate_username(client):
    await client.post("/api/auth/signup", json=signup_body("dup"))
    r = await client.post("/api/auth/signup", json=signup_body("dup", email="other@example.com"))

    assert r.status_code == 409
    body = r.json()
    assert set(body) == ERROR_KEYS
    assert body["message"] == "Username is already taken!"
    assert body["path"] == "/api/auth/signup"


@pytest.mark.asyncio
async def test_signup_duplicate_username_and_email_reports_username(client):
    await client.post("/api/auth/signup", json=signup_body("twice"))
    r = await client.post("/api/auth/signup", json=signup_body("twice"))

    assert r.status_code == 409
    assert r.json()["message"] == "Username is already taken!"


@pytest.mark.asyncio
async def test_signup_duplicate_email(client):
    await client.post("/api/auth/signup", json=signup_body("first", email="shared@example.com"))
    r = await client.post("/api/auth/signup", json=signup_body("second", email="shared@example.com"))

    assert r.status_code == 409
    assert r.json()["message"] == "Email is already taken!"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"secret": "abc"},
        {"email": "not-an-email"},
        {"username": "x"},
        {"username": "y" * 51},
        {"username": "has space"},
        {"displayName": ""},
    ],
)
async def test_signup_validation(client, overrides):
    r = await client.post("/api/auth/signup", json=signup_body("valid", **overrides))
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_signup_short_username_points_at_username(client):
    r = await client.post("/api/auth/signup", json=signup_body("valid", username="ab"))

    assert r.status_code == 422
    assert any(err["loc"][-1] == "username" for err in r.json()["detail"])


# ═══════════════════════════════════════════════════════════
# Login
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_login_with_username(client, make_user, codec):
    user = await make_user("bob")

    r = await client.post("/api/auth/login", json={"identifier": "bob", "secret": PASSWORD})
    assert r.status_code == 200
    body = r.json()
    assert body["tokenType"] == "Bearer"
    assert body["expiresIn"] == codec.expires_in
    assert body["id"] == str(user.id)
    assert body["username"] == "bob"
    assert body["email"] == "bob@example.com"
    assert body["displayName"] == "Bob"
    assert body["role"] == "USER"
    assert codec.parse_subject(body["token"]) == "bob"


@pytest.mark.asyncio
async def test_login_with_email_and_legacy_fields(client, make_user, codec):
    await make_user("carol")

    r = await client.post(
        "/api/auth/login",
        json={"usernameOrEmail": "carol@example.com", "password": PASSWORD},
    )
    assert r.status_code == 200
    assert codec.parse_subject(r.json()["token"]) == "carol"


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(client, make_user):
    await make_user("realuser")

    ghost = await client.post("/api/auth/login", json={"identifier": "ghost", "secret": "x"})
    wrong = await client.post(
        "/api/auth/login", json={"identifier": "realuser", "secret": "wrongpass"}
    )

    assert ghost.status_code == wrong.status_code == 401
    g, w = ghost.json(), wrong.json()
    assert set(g) == set(w) == ERROR_KEYS
    assert (g["status"], g["error"], g["message"]) == (w["status"], w["error"], w["message"])
    assert g["error"] == "Unauthorized"


@pytest.mark.asyncio
async def test_login_disabled_user(client, make_user):
    await make_user("sleeper", enabled=False)

    r = await client.post("/api/auth/login", json={"identifier": "sleeper", "secret": PASSWORD})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_signup_then_login_then_me(client):
    await client.post("/api/auth/signup", json=signup_body("dana"))
    r = await client.post(
        "/api/auth/login", json={"identifier": "dana", "secret": "secure_password_123"}
    )
    token = r.json()["token"]

    r = await client.get("/api/users/me", headers=bearer(token))
    assert r.status_code == 200
    me = r.json()
    assert me["username"] == "dana"
    assert me["grantedRoles"] == ["ROLE_USER"]


# ═══════════════════════════════════════════════════════════
# Gate + route policy
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_protected_route_without_token_never_reaches_handler(app, client):
    calls = []

    @app.get("/api/protected-sample")
    async def protected_sample():
        calls.append(1)
        return {"ok": True}

    r = await client.get("/api/protected-sample")

    assert r.status_code == 401
    body = r.json()
    assert set(body) == ERROR_KEYS
    assert body["status"] == 401
    assert body["error"] == "Unauthorized"
    assert body["path"] == "/api/protected-sample"
    assert r.headers["WWW-Authenticate"] == "Bearer"
    assert calls == []


@pytest.mark.asyncio
async def test_public_route_with_malformed_token_reaches_handler(client):
    r = await client.get("/api/test/all", headers=bearer("garbage.token.value"))

    assert r.status_code == 200
    assert r.json()["content"] == "Public content."
    assert r.headers["X-Token-Error"] == "MALFORMED"


@pytest.mark.asyncio
async def test_public_auth_routes_work_with_bad_token(client, make_user):
    await make_user("erin")

    r = await client.post(
        "/api/auth/login",
        json={"identifier": "erin", "secret": PASSWORD},
        headers=bearer("expired-or-garbage"),
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_expired_token_on_protected_route(client, make_user, settings):
    await make_user("frank")
    token = issue_token("frank", settings.jwt_secret, timedelta(0))

    r = await client.get("/api/users/me", headers=bearer(token))

    assert r.status_code == 401
    assert r.json()["message"] == "Token has expired"
    assert r.headers["X-Token-Error"] == "EXPIRED"


@pytest.mark.asyncio
async def test_wrong_key_token_on_protected_route(client, make_user):
    await make_user("gina")
    token = issue_token("gina", "not-the-server-key-0123456789abcdef-xyz", timedelta(minutes=5))

    r = await client.get("/api/users/me", headers=bearer(token))

    assert r.status_code == 401
    assert r.headers["X-Token-Error"] == "INVALID_SIGNATURE"


@pytest.mark.asyncio
async def test_token_for_unknown_user(client, token_for):
    r = await client.get("/api/users/me", headers=bearer(token_for("nobody")))

    assert r.status_code == 401
    assert r.headers["X-Token-Error"] == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_valid_token_sets_debug_headers(client, make_user, token_for):
    await make_user("hank")

    r = await client.get("/api/users/me", headers=bearer(token_for("hank")))

    assert r.status_code == 200
    assert r.headers["X-Token-Valid"] == "true"
    assert r.headers["X-Token-User"] == "hank"


@pytest.mark.asyncio
async def test_missing_token_debug_header(client):
    r = await client.get("/api/test/all")
    assert r.headers["X-Token-Status"] == "NOT_PROVIDED"


@pytest.mark.asyncio
async def test_debug_headers_off_by_default(settings, session_factory, make_user, token_for):
    from httpx import ASGITransport, AsyncClient

    from tokengate.main import create_app

    quiet = create_app(
        settings=settings.model_copy(update={"token_debug_headers": False}),
        session_factory=session_factory,
    )
    await make_user("ivy")

    async with AsyncClient(transport=ASGITransport(app=quiet), base_url="http://test") as ac:
        ok = await ac.get("/api/users/me", headers=bearer(token_for("ivy")))
        bad = await ac.get("/api/test/all", headers=bearer("garbage"))

    assert ok.status_code == 200
    for r in (ok, bad):
        assert not any(h.lower().startswith("x-token-") for h in r.headers)


# ═══════════════════════════════════════════════════════════
# Role checks at the handler
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_role_route_anonymous_is_401(client):
    r = await client.get("/api/test/user")
    assert r.status_code == 401
    assert r.json()["error"] == "Unauthorized"


@pytest.mark.asyncio
async def test_admin_route_forbidden_for_user(client, make_user, token_for):
    await make_user("jill")

    r = await client.get("/api/test/admin", headers=bearer(token_for("jill")))

    assert r.status_code == 403
    body = r.json()
    assert set(body) == ERROR_KEYS
    assert body["status"] == 403
    assert body["error"] == "Forbidden"
    assert body["path"] == "/api/test/admin"


@pytest.mark.asyncio
async def test_admin_route_allowed_for_admin(client, make_user, token_for):
    await make_user("root", role=Role.ADMIN)

    r = await client.get("/api/test/admin", headers=bearer(token_for("root")))
    assert r.status_code == 200
    assert r.json()["username"] == "root"

    r = await client.get("/api/test/user", headers=bearer(token_for("root")))
    assert r.status_code == 200


# ═══════════════════════════════════════════════════════════
# Availability checks
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_availability_requires_auth(client):
    r = await client.get("/api/check-email/someone@example.com")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_availability_checks(client, make_user, token_for):
    await make_user("kim")
    headers = bearer(token_for("kim"))

    taken = await client.get("/api/check-email/kim@example.com", headers=headers)
    free = await client.get("/api/check-email/free@example.com", headers=headers)
    name = await client.get("/api/check-username/kim", headers=headers)

    assert taken.json() == {"value": "kim@example.com", "available": False}
    assert free.json() == {"value": "free@example.com", "available": True}
    assert name.json()["available"] is False


# ═══════════════════════════════════════════════════════════
# Concurrency
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_concurrent_requests_keep_their_own_identity(client, make_user, token_for):
    names = ["luke", "mara", "nico", "olga"]
    for name in names:
        await make_user(name)
    tokens = {name: token_for(name) for name in names}

    order = names * 5
    responses = await asyncio.gather(
        *(client.get("/api/users/me", headers=bearer(tokens[name])) for name in order)
    )

    for name, r in zip(order, responses):
        assert r.status_code == 200
        assert r.json()["username"] == name
        assert r.headers["X-Token-User"] == name
