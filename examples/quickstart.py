#!/usr/bin/env python3
"""
tokengate Quickstart — signup, login and the gate in one script.

Signs up a user → logs in → calls a protected route → tries the admin
board (403) → shows what happens to missing and tampered tokens.
Run with: python examples/quickstart.py

Requires: pip install httpx
Server must be running: tokengate serve  (http://localhost:8000)
"""

import sys
import uuid

import httpx

BASE = "http://localhost:8000/api"


def show(label: str, resp: httpx.Response) -> None:
    body = resp.json()
    detail = body.get("message") or body.get("content") or body.get("username", "")
    print(f"   {label}: {resp.status_code} {detail}")


def main():
    run_id = uuid.uuid4().hex[:6]
    username = f"demo_{run_id}"
    password = "demo-password-123"
    client = httpx.Client(base_url=BASE, timeout=10)

    # ── Health check ──────────────────────────────────────────────
    print("Checking server health...")
    try:
        resp = client.get("/health")
    except httpx.ConnectError:
        print(f"Server not reachable at {BASE}")
        print("Start it with:  tokengate serve")
        sys.exit(1)
    health = resp.json()
    print(f"  Status:   {health['status']}")
    print(f"  Database: {health['database']}")

    # ── Signup ────────────────────────────────────────────────────
    print("\n1. Signing up...")
    resp = client.post("/auth/signup", json={
        "username": username,
        "email": f"{username}@example.com",
        "secret": password,
        "displayName": f"Demo User {run_id}",
    })
    assert resp.status_code == 200, f"Failed: {resp.text}"
    user = resp.json()
    print(f"   User: {user['username']} ({user['id'][:8]}...) role={user['role']}")

    resp = client.post("/auth/signup", json={
        "username": username,
        "email": f"other-{run_id}@example.com",
        "secret": password,
        "displayName": "Copycat",
    })
    show("Same username again", resp)

    # ── Login ─────────────────────────────────────────────────────
    print("\n2. Logging in...")
    resp = client.post("/auth/login", json={"identifier": username, "secret": password})
    assert resp.status_code == 200, f"Failed: {resp.text}"
    login = resp.json()
    token = login["token"]
    print(f"   Token: {token[:24]}... (expires in {login['expiresIn']}s)")

    resp = client.post("/auth/login", json={"identifier": username, "secret": "wrong"})
    show("Wrong password", resp)
    resp = client.post("/auth/login", json={"identifier": f"ghost_{run_id}", "secret": "wrong"})
    show("Unknown user  ", resp)

    # ── Protected routes ──────────────────────────────────────────
    print("\n3. Calling protected routes...")
    auth = {"Authorization": f"Bearer {token}"}
    resp = client.get("/users/me", headers=auth)
    me = resp.json()
    print(f"   Me: {me['username']} roles={me['grantedRoles']}")
    show("User board ", client.get("/test/user", headers=auth))
    show("Admin board", client.get("/test/admin", headers=auth))

    # ── Bad tokens ────────────────────────────────────────────────
    print("\n4. Missing and tampered tokens...")
    show("No token      ", client.get("/users/me"))
    tampered = token[:-4] + ("AAAA" if not token.endswith("AAAA") else "BBBB")
    show("Tampered token", client.get("/users/me", headers={"Authorization": f"Bearer {tampered}"}))
    show("Tampered, public route", client.get("/test/all", headers={"Authorization": f"Bearer {tampered}"}))

    print("\nDone.")


if __name__ == "__main__":
    main()
