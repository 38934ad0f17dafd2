"""
Document store and credential store adapter.

DocumentStore is the narrow get/set-by-key interface over the persistence
engine. Every call:
  - runs in its own short-lived session
  - is bounded by EXTERNAL_CALL_TIMEOUT_SECONDS (ExternalTimeoutError)
  - wraps SQLAlchemy failures in StoreError with the cause attached

A users or settings document that does not validate also raises StoreError.

CredentialStore layers the auth vocabulary on top: the "users" list, the
"settings" document, and the site name/logo keys.

Concurrency:
  The users collection is a single document, so updating one user is a
  read-modify-write of the whole list. Writers hold a per-key lock for the
  duration of that cycle, which serialises writes inside this process.
  Separate processes sharing one database can still lose updates
  (last writer wins).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from skyport_auth.config import settings
from skyport_auth.exceptions import AccountExistsError, ExternalTimeoutError, StoreError
from skyport_auth.models.document import Document
from skyport_auth.schemas.site_settings import SiteSettings
from skyport_auth.schemas.user import UserRecord

logger = logging.getLogger(__name__)

USERS_KEY = "users"
SETTINGS_KEY = "settings"
NAME_KEY = "name"
LOGO_KEY = "logo"


class DocumentStore:
    """Key/value access to JSON documents."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        timeout: float | None = None,
    ):
        self._session_factory = session_factory
        self._timeout = (
            timeout if timeout is not None else settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        )
        self._locks: dict[str, asyncio.Lock] = {}

    async def get(self, key: str) -> Any | None:
        """Return the document stored under key, or None if absent."""
        return await self._bounded(self._get(key), f"read of {key!r}")

    async def set(self, key: str, value: Any) -> None:
        """Create or replace the document stored under key."""
        await self._bounded(self._set(key, value), f"write of {key!r}")

    @asynccontextmanager
    async def locked(self, key: str) -> AsyncIterator[None]:
        """Hold the write lock for key (not reentrant)."""
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            yield

    async def _get(self, key: str) -> Any | None:
        async with self._session_factory() as session:
            document = await session.get(Document, key)
            return None if document is None else document.value

    async def _set(self, key: str, value: Any) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                document = await session.get(Document, key)
                if document is None:
                    session.add(Document(key=key, value=value))
                else:
                    document.value = value

    async def _bounded(self, operation, action: str):
        try:
            return await asyncio.wait_for(operation, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalTimeoutError(f"Store {action} timed out", cause=exc) from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"Store {action} failed", cause=exc) from exc


class CredentialStore:
    """
    Reads and writes user records and site settings.

    Lookups are exact, case-sensitive matches. Nothing is cached: every call
    goes to the document store, so callers always observe live state.
    """

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    async def list_users(self) -> list[UserRecord]:
        raw = await self.documents.get(USERS_KEY) or []
        try:
            return [UserRecord.model_validate(doc) for doc in raw]
        except (ValidationError, TypeError) as exc:
            raise StoreError("Malformed users document", cause=exc) from exc

    async def find_user(
        self, predicate: Callable[[UserRecord], bool]
    ) -> UserRecord | None:
        for user in await self.list_users():
            if predicate(user):
                return user
        return None

    async def find_by_username(self, username: str) -> UserRecord | None:
        return await self.find_user(lambda u: u.username == username)

    async def find_by_email(self, email: str) -> UserRecord | None:
        return await self.find_user(lambda u: u.email == email)

    async def find_by_identifier(self, identifier: str) -> UserRecord | None:
        """An identifier containing "@" is an email, anything else a username."""
        if "@" in identifier:
            return await self.find_by_email(identifier)
        return await self.find_by_username(identifier)

    async def find_by_verification_token(self, token: str) -> UserRecord | None:
        if not token:
            return None
        return await self.find_user(lambda u: u.verification_token == token)

    async def find_by_reset_token(self, token: str) -> UserRecord | None:
        if not token:
            return None
        return await self.find_user(lambda u: u.reset_token == token)

    async def username_exists(self, username: str) -> bool:
        return await self.find_by_username(username) is not None

    async def email_exists(self, email: str) -> bool:
        return await self.find_by_email(email) is not None

    async def add_user(self, user: UserRecord) -> None:
        async with self.documents.locked(USERS_KEY):
            users = await self.list_users()
            users.append(user)
            await self._save_users(users)
        logger.debug("Stored new user %s (%s)", user.id, user.username)

    async def add_user_if_absent(self, user: UserRecord) -> None:
        """
        Append user unless its username or email is already taken.

        The check and the append share one hold of the users lock, so two
        concurrent registrations for the same name cannot both succeed.

        Raises:
            AccountExistsError: Either field collides. Nothing is written.
        """
        async with self.documents.locked(USERS_KEY):
            users = await self.list_users()
            if any(u.username == user.username or u.email == user.email for u in users):
                raise AccountExistsError()
            users.append(user)
            await self._save_users(users)
        logger.debug("Stored new user %s (%s)", user.id, user.username)

    async def update_first(
        self,
        predicate: Callable[[UserRecord], bool],
        mutate: Callable[[UserRecord], None],
    ) -> UserRecord | None:
        """
        Apply mutate to the first user matching predicate and persist.

        The lookup and the write happen under the users lock, so a token
        cannot be consumed twice by two requests in this process.

        Returns:
            The updated user, or None if nothing matched (no write happens).
        """
        async with self.documents.locked(USERS_KEY):
            users = await self.list_users()
            for user in users:
                if predicate(user):
                    mutate(user)
                    await self._save_users(users)
                    return user
        return None

    async def update_user(
        self, user: UserRecord, mutate: Callable[[UserRecord], None]
    ) -> UserRecord | None:
        """Re-read the users list and apply mutate to the entry with user.id."""
        return await self.update_first(lambda u: u.id == user.id, mutate)

    async def _save_users(self, users: list[UserRecord]) -> None:
        await self.documents.set(USERS_KEY, [u.to_document() for u in users])

    # -----------------------------------------------------------------------
    # Site settings and branding
    # -----------------------------------------------------------------------

    async def get_site_settings(self) -> SiteSettings | None:
        """Return the settings document, or None if it was never created."""
        raw = await self.documents.get(SETTINGS_KEY)
        if raw is None:
            return None
        try:
            return SiteSettings.model_validate(raw)
        except ValidationError as exc:
            raise StoreError("Malformed settings document", cause=exc) from exc

    async def current_site_settings(self) -> SiteSettings:
        """Settings as seen by login/registration: defaults when absent."""
        return await self.get_site_settings() or SiteSettings()

    async def ensure_site_settings(self) -> tuple[SiteSettings, bool]:
        """
        Create the settings document with defaults if it is absent.

        Returns:
            (settings, created) where created is True on first-run bootstrap.
        """
        current = await self.get_site_settings()
        if current is not None:
            return current, False
        defaults = SiteSettings()
        await self.save_site_settings(defaults)
        logger.info("Initialised site settings with forceVerify=false")
        return defaults, True

    async def save_site_settings(self, site_settings: SiteSettings) -> None:
        await self.documents.set(SETTINGS_KEY, site_settings.to_document())

    async def site_name(self) -> str:
        return await self.documents.get(NAME_KEY) or settings.DEFAULT_SITE_NAME

    async def site_logo(self) -> str | bool:
        return await self.documents.get(LOGO_KEY) or False
