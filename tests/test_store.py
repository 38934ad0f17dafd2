"""
Tests for the document store and the credential store adapter.

These tests verify:
  - Absent keys read as None; set creates and then replaces
  - User documents use camelCase keys and omit a cleared resetToken
  - Keys written by other parts of the platform survive a rewrite
  - Identifier lookup switches between email and username on "@"
  - Settings bootstrap creates forceVerify=false exactly once
  - Store failures and malformed documents surface as StoreError
"""

import uuid

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from skyport_auth.exceptions import AccountExistsError, StoreError
from skyport_auth.schemas.site_settings import SiteSettings
from skyport_auth.schemas.user import UserRecord
from skyport_auth.store import CredentialStore, DocumentStore


def make_user(username="alice", email="alice@example.com", **fields) -> UserRecord:
    return UserRecord(
        id=uuid.uuid4(),
        username=username,
        email=email,
        password_hash="$argon2id$placeholder",
        **fields,
    )


class TestDocumentStore:

    async def test_absent_key_is_none(self, documents):
        assert await documents.get("missing") is None

    async def test_set_then_replace(self, documents):
        await documents.set("name", "Skyport")
        assert await documents.get("name") == "Skyport"
        await documents.set("name", "Other Panel")
        assert await documents.get("name") == "Other Panel"

    async def test_structured_values(self, documents):
        await documents.set("settings", {"forceVerify": True, "theme": "dark"})
        assert await documents.get("settings") == {"forceVerify": True, "theme": "dark"}

    async def test_missing_table_raises_store_error(self):
        engine = create_async_engine("sqlite+aiosqlite://")
        broken = DocumentStore(
            async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        )
        with pytest.raises(StoreError) as exc_info:
            await broken.get("users")
        assert exc_info.value.cause is not None
        await engine.dispose()


class TestUserDocuments:

    async def test_stored_document_shape(self, store, documents):
        user = make_user(verification_token="tok123")
        await store.add_user(user)

        [doc] = await documents.get("users")
        assert doc["id"] == str(user.id)
        assert doc["passwordHash"] == "$argon2id$placeholder"
        assert doc["verificationToken"] == "tok123"
        assert doc["isAdmin"] is False
        assert doc["welcomeEmailSent"] is False
        assert "resetToken" not in doc

    async def test_reset_token_removed_when_cleared(self, store, documents):
        user = make_user(reset_token="reset123")
        await store.add_user(user)
        assert (await documents.get("users"))[0]["resetToken"] == "reset123"

        await store.update_user(user, lambda u: setattr(u, "reset_token", None))
        assert "resetToken" not in (await documents.get("users"))[0]

    async def test_unknown_keys_survive_rewrite(self, store, documents):
        await documents.set("users", [{
            "id": str(uuid.uuid4()),
            "username": "legacy",
            "email": "legacy@example.com",
            "passwordHash": "$argon2id$placeholder",
            "verified": True,
            "Accesto": ["node-1"],
        }])
        await store.add_user(make_user())

        legacy = (await documents.get("users"))[0]
        assert legacy["Accesto"] == ["node-1"]

    async def test_update_first_without_match_writes_nothing(self, store, documents):
        await store.add_user(make_user())
        before = await documents.get("users")

        result = await store.update_first(
            lambda u: u.username == "nobody", lambda u: setattr(u, "verified", True)
        )
        assert result is None
        assert await documents.get("users") == before


class TestLookups:

    async def test_identifier_with_at_matches_email(self, store):
        await store.add_user(make_user())
        user = await store.find_by_identifier("alice@example.com")
        assert user is not None and user.username == "alice"

    async def test_identifier_without_at_matches_username(self, store):
        await store.add_user(make_user())
        user = await store.find_by_identifier("alice")
        assert user is not None and user.email == "alice@example.com"

    async def test_username_containing_email_is_not_matched_as_username(self, store):
        """"@" always means email, even if a username happens to match."""
        await store.add_user(make_user(username="bob@home", email="bob@example.com"))
        assert await store.find_by_identifier("bob@home") is None

    async def test_lookup_is_exact_match(self, store):
        await store.add_user(make_user())
        assert await store.find_by_identifier("Alice") is None
        assert await store.find_by_identifier("ALICE@example.com") is None

    async def test_empty_token_never_matches(self, store):
        await store.add_user(make_user())
        assert await store.find_by_verification_token("") is None
        assert await store.find_by_reset_token("") is None

    async def test_no_users_document(self, store):
        assert await store.list_users() == []
        assert not await store.username_exists("alice")

    async def test_malformed_users_document_raises_store_error(self, store, documents):
        await documents.set("users", [{"username": "alice"}])
        with pytest.raises(StoreError) as exc_info:
            await store.find_by_username("alice")
        assert exc_info.value.cause is not None

    async def test_add_user_if_absent_refuses_collisions(self, store, documents):
        await store.add_user_if_absent(make_user())
        before = await documents.get("users")

        with pytest.raises(AccountExistsError):
            await store.add_user_if_absent(make_user(email="other@example.com"))
        with pytest.raises(AccountExistsError):
            await store.add_user_if_absent(make_user(username="other"))
        assert await documents.get("users") == before


class TestSiteSettings:

    async def test_absent_settings_read_as_defaults(self, store):
        assert await store.get_site_settings() is None
        assert (await store.current_site_settings()).force_verify is False

    async def test_bootstrap_creates_defaults_once(self, store, documents):
        settings, created = await store.ensure_site_settings()
        assert created is True
        assert settings.force_verify is False
        assert await documents.get("settings") == {"forceVerify": False}

        _, created_again = await store.ensure_site_settings()
        assert created_again is False

    async def test_bootstrap_keeps_existing_settings(self, store):
        await store.save_site_settings(SiteSettings(force_verify=True))
        settings, created = await store.ensure_site_settings()
        assert created is False
        assert settings.force_verify is True

    async def test_malformed_settings_raise_store_error(self, store, documents):
        await documents.set("settings", {"forceVerify": "maybe"})
        with pytest.raises(StoreError):
            await store.current_site_settings()

    async def test_site_name_and_logo_defaults(self, store):
        assert await store.site_name() == "Skyport"
        assert await store.site_logo() is False

    async def test_site_name_and_logo_from_store(self, store, documents):
        await documents.set("name", "Acme Panel")
        await documents.set("logo", "https://cdn.example.com/logo.png")
        assert await store.site_name() == "Acme Panel"
        assert await store.site_logo() == "https://cdn.example.com/logo.png"
