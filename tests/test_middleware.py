"""Middleware tests — security headers and request IDs on every response."""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import bearer
from tokengate.main import create_app
from tokengate.middleware.request_id import resolve_request_id

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "0",
    "Cache-Control": "no-cache, no-store, max-age=0, must-revalidate",
    "Pragma": "no-cache",
}


@pytest.mark.asyncio
async def test_security_headers_on_success(client):
    r = await client.get("/api/test/all")
    assert r.status_code == 200
    for name, value in SECURITY_HEADERS.items():
        assert r.headers[name] == value


@pytest.mark.asyncio
async def test_security_headers_on_rejection(client):
    r = await client.get("/api/users/me", headers=bearer("garbage"))
    assert r.status_code == 401
    for name, value in SECURITY_HEADERS.items():
        assert r.headers[name] == value


@pytest.mark.asyncio
async def test_no_hsts_over_http(client):
    r = await client.get("/api/test/all")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_request_id_generated(client):
    first = await client.get("/api/test/all")
    second = await client.get("/api/test/all")

    assert first.headers["X-Request-ID"]
    assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    r = await client.get("/api/users/me", headers={"X-Request-ID": "trace-abc-123"})
    assert r.status_code == 401
    assert r.headers["X-Request-ID"] == "trace-abc-123"


@pytest.mark.asyncio
async def test_preflight_is_not_gated(client):
    r = await client.options(
        "/api/users/me",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://localhost:5173"


@pytest.mark.asyncio
@pytest.mark.parametrize("incoming", ["x" * 129, "<script>", "a b", "id;drop"])
async def test_untrusted_request_id_is_replaced(client, incoming):
    r = await client.get("/api/test/all", headers={"X-Request-ID": incoming})

    echoed = r.headers["X-Request-ID"]
    assert echoed != incoming
    assert uuid.UUID(echoed)


@pytest.mark.parametrize(
    "incoming, trusted",
    [
        ("trace-abc-123", True),
        ("4f1c2a9e-0b7d-4c1e-9a55-3e2f0c6d8b10", True),
        ("svc.gateway:42", True),
        ("", False),
        (None, False),
        ("x" * 129, False),
    ],
)
def test_resolve_request_id(incoming, trusted):
    assert (resolve_request_id(incoming) == incoming) is trusted


@pytest.mark.asyncio
async def test_hsts_over_https(settings, session_factory):
    app = create_app(
        settings=settings.model_copy(update={"hsts_max_age": 600}),
        session_factory=session_factory,
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="https://test") as ac:
        ok = await ac.get("/api/test/all")
        denied = await ac.get("/api/users/me")

    assert denied.status_code == 401
    for r in (ok, denied):
        assert r.headers["Strict-Transport-Security"] == "max-age=600; includeSubDomains"
