#!/usr/bin/env python3
"""
Toggle forceVerify in the settings document. Run on the server.

This is the administrative path the running service polls: within
REGISTRATION_POLL_SECONDS the registration routes appear (on) or
disappear (off).

Usage:
    python demo/set_force_verify.py on
    python demo/set_force_verify.py off
"""
import argparse
import asyncio

from skyport_auth.database import AsyncSessionLocal, engine
from skyport_auth.store import CredentialStore, DocumentStore


async def set_force_verify(enabled: bool) -> None:
    store = CredentialStore(DocumentStore(AsyncSessionLocal))
    site_settings, _ = await store.ensure_site_settings()
    site_settings.force_verify = enabled
    await store.save_site_settings(site_settings)
    print(f"forceVerify = {str(enabled).lower()}")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("state", choices=["on", "off"])
    args = parser.parse_args()
    asyncio.run(set_force_verify(args.state == "on"))
