#!/usr/bin/env python3
"""
Demo seed script — registers sample accounts through the running API.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords. It is intended ONLY for
local demos and frontend development.

What it does:
  1. Turns forceVerify on (directly in the store) so registration opens
  2. Waits for the service to mount POST /auth/register
  3. Registers each demo user through the API
  4. Verifies each user through GET /verify/{token}
  5. Logs in once per user to confirm the account works

Usage:
    # With the API server running on localhost:8000, from the repo root:
    python demo/seed.py

    # Reset the database:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────┬──────────────────────────────┬───────────────────┐
    │ Username │ Email                        │ Password          │
    ├──────────┼──────────────────────────────┼───────────────────┤
    │ alice    │ alice.chen@example.com       │ AliceDemo123!     │
    │ bob      │ bob.martinez@example.com     │ BobDemo123!       │
    │ carol    │ carol.nguyen@example.com     │ CarolDemo123!     │
    └──────────┴──────────────────────────────┴───────────────────┘
"""

import argparse
import asyncio
import os
import sys

import httpx

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from skyport_auth.database import AsyncSessionLocal, engine  # noqa: E402
from skyport_auth.schemas.site_settings import SiteSettings  # noqa: E402
from skyport_auth.store import CredentialStore, DocumentStore  # noqa: E402

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

USERS = [
    {"username": "alice", "email": "alice.chen@example.com", "password": "AliceDemo123!"},
    {"username": "bob", "email": "bob.martinez@example.com", "password": "BobDemo123!"},
    {"username": "carol", "email": "carol.nguyen@example.com", "password": "CarolDemo123!"},
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


async def wait_for_registration(client: httpx.AsyncClient, base_url: str) -> None:
    """Poll until the watcher has mounted the registration page."""
    for _ in range(30):
        resp = await client.get(f"{base_url}/register")
        if resp.status_code == 200:
            return
        await asyncio.sleep(0.5)
    raise RuntimeError("Registration never became available. Is the server running?")


async def register(client: httpx.AsyncClient, base_url: str, user: dict) -> bool:
    """Register a user. Returns False if the user already exists."""
    resp = await client.post(f"{base_url}/auth/register", data=user)
    if resp.status_code == 409:
        return False
    if resp.status_code != 303:
        resp.raise_for_status()
    return True


async def verify(client: httpx.AsyncClient, base_url: str, store: CredentialStore,
                 username: str) -> str:
    """Consume the pending verification token the way the emailed link would."""
    user = await store.find_by_username(username)
    if user is None or user.verification_token is None:
        return "already verified"
    resp = await client.get(f"{base_url}/verify/{user.verification_token}")
    return resp.headers.get("location", str(resp.status_code))


async def login(client: httpx.AsyncClient, base_url: str, user: dict) -> str:
    resp = await client.post(f"{base_url}/auth/login", data={
        "identifier": user["username"],
        "password": user["password"],
    })
    return resp.headers.get("location", str(resp.status_code))


# ---------------------------------------------------------------------------
# Seed
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    store = CredentialStore(DocumentStore(AsyncSessionLocal))

    print("\nEnabling self-registration (forceVerify = true)...")
    await store.save_site_settings(SiteSettings(force_verify=True))

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            await wait_for_registration(client, base_url)
        except httpx.ConnectError:
            print(f"\n  Cannot reach {base_url}. Start the server first:")
            print("    uvicorn skyport_auth.main:app --reload\n")
            return

        print("\nRegistering users...")
        for user in USERS:
            created = await register(client, base_url, user)
            log(f"{user['username']}: {'created' if created else 'already exists'}")

        print("\nVerifying email addresses...")
        for user in USERS:
            log(f"{user['username']}: {await verify(client, base_url, store, user['username'])}")

        print("\nChecking logins...")
        for user in USERS:
            log(f"{user['username']}: {await login(client, base_url, user)}")

    await engine.dispose()

    print("\n========================================")
    print("  SEED COMPLETE — Login Credentials")
    print("========================================")
    print(f"\n  {'Username':<10s} {'Email':<30s} {'Password'}")
    print(f"  {'─' * 10} {'─' * 30} {'─' * 16}")
    for u in USERS:
        print(f"  {u['username']:<10s} {u['email']:<30s} {u['password']}")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "skyport.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Registers and verifies sample users for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
