"""
Tests for credential verification and session identity.

These tests verify:
  - Username and email both authenticate, chosen by the "@" rule
  - Each refusal raises its own error with its own message
  - forceVerify gates unverified users, and the gate is distinguishable
  - authenticate() never writes to the store
  - The session identity is the username and is re-read on every lookup
"""

import pytest
import pytest_asyncio

from skyport_auth.exceptions import (
    AuthenticationError,
    BadPasswordError,
    NoSuchUserError,
    SessionUserMissingError,
    VerificationRequiredError,
)
from skyport_auth.schemas.site_settings import SiteSettings
from skyport_auth.services import account_service
from skyport_auth.services.auth_service import authenticate
from skyport_auth.services.session_service import deserialize_user, serialize_user


@pytest_asyncio.fixture
async def alice(store, notifier):
    """A verified user registered while forceVerify is off."""
    return await account_service.register(
        store, notifier, "alice", "alice@example.com", "AlicePass123!"
    )


class TestAuthenticate:

    async def test_login_by_username(self, store, alice):
        user = await authenticate(store, "alice", "AlicePass123!")
        assert user.id == alice.id

    async def test_login_by_email(self, store, alice):
        user = await authenticate(store, "alice@example.com", "AlicePass123!")
        assert user.username == "alice"

    async def test_unknown_user(self, store, alice):
        with pytest.raises(NoSuchUserError) as exc_info:
            await authenticate(store, "mallory", "AlicePass123!")
        assert exc_info.value.detail == "Incorrect username or email"
        assert exc_info.value.user_not_verified is False

    async def test_no_users_at_all(self, store):
        with pytest.raises(NoSuchUserError):
            await authenticate(store, "alice", "AlicePass123!")

    async def test_wrong_password(self, store, alice):
        with pytest.raises(BadPasswordError) as exc_info:
            await authenticate(store, "alice", "WrongPass123!")
        assert exc_info.value.detail == "Incorrect password"

    async def test_case_sensitive_identifier(self, store, alice):
        with pytest.raises(NoSuchUserError):
            await authenticate(store, "Alice", "AlicePass123!")

    async def test_unverified_user_refused_when_force_verify(
        self, store, notifier, force_verify
    ):
        await account_service.register(store, notifier, "bob", "bob@example.com", "BobPass123!")

        with pytest.raises(VerificationRequiredError) as exc_info:
            await authenticate(store, "bob", "BobPass123!")
        assert exc_info.value.user_not_verified is True
        assert exc_info.value.detail == "Email not verified"

    async def test_unverified_user_allowed_when_force_verify_turned_off(
        self, store, notifier, force_verify
    ):
        await account_service.register(store, notifier, "bob", "bob@example.com", "BobPass123!")
        await store.save_site_settings(SiteSettings(force_verify=False))

        user = await authenticate(store, "bob", "BobPass123!")
        assert user.verified is False

    async def test_verified_user_passes_force_verify(self, store, alice):
        await store.save_site_settings(SiteSettings(force_verify=True))
        user = await authenticate(store, "alice", "AlicePass123!")
        assert user.verified is True

    async def test_all_refusals_share_a_base_class(self, store, alice):
        for identifier, password in [("nobody", "x"), ("alice", "nope")]:
            with pytest.raises(AuthenticationError):
                await authenticate(store, identifier, password)

    async def test_authenticate_is_read_only(self, store, documents, alice):
        before = await documents.get("users")
        await authenticate(store, "alice", "AlicePass123!")
        with pytest.raises(BadPasswordError):
            await authenticate(store, "alice", "WrongPass123!")
        assert await documents.get("users") == before


class TestSessionIdentity:

    async def test_serialize_is_username(self, alice):
        assert serialize_user(alice) == "alice"

    async def test_deserialize_returns_live_record(self, store, alice):
        user = await deserialize_user(store, serialize_user(alice))
        assert user.id == alice.id

    async def test_deserialize_sees_edits_immediately(self, store, alice):
        await store.update_user(alice, lambda u: setattr(u, "is_admin", True))
        user = await deserialize_user(store, "alice")
        assert user.is_admin is True

    async def test_deserialize_missing_user(self, store, documents, alice):
        await documents.set("users", [])
        with pytest.raises(SessionUserMissingError):
            await deserialize_user(store, "alice")
