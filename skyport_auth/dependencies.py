"""
FastAPI dependencies for collaborators and the session user.

Dependency chain:

  get_store    -> CredentialStore over the process-wide DocumentStore
  get_mailer   -> Mailer selected by MAIL_BACKEND
  get_notifier -> NotificationDispatcher(get_mailer)
  get_current_user (session cookie -> username -> live UserRecord)

Tests replace get_store and get_mailer through app.dependency_overrides,
so route code runs unchanged against an in-memory database and a
recording mailer.
"""

from functools import lru_cache

from fastapi import Depends, HTTPException, Request, status

from skyport_auth.config import settings
from skyport_auth.database import AsyncSessionLocal
from skyport_auth.mail import Mailer, get_mailer as build_mailer
from skyport_auth.schemas.auth import PageContext
from skyport_auth.schemas.user import UserRecord
from skyport_auth.security import decode_session
from skyport_auth.services.notification_service import NotificationDispatcher
from skyport_auth.services.session_service import deserialize_user
from skyport_auth.store import CredentialStore, DocumentStore


# One DocumentStore per process so every request shares its per-key locks
document_store = DocumentStore(AsyncSessionLocal)


def get_store() -> CredentialStore:
    return CredentialStore(document_store)


@lru_cache
def get_mailer() -> Mailer:
    return build_mailer()


def get_notifier(mailer: Mailer = Depends(get_mailer)) -> NotificationDispatcher:
    return NotificationDispatcher(mailer)


async def get_page_context(
    store: CredentialStore = Depends(get_store),
) -> PageContext:
    """Site name and logo for pages rendered outside this service."""
    return PageContext(name=await store.site_name(), logo=await store.site_logo())


async def get_current_user(
    request: Request,
    store: CredentialStore = Depends(get_store),
) -> UserRecord:
    """
    Resolve the session cookie to the live user record.

    Raises:
        HTTPException 401: No cookie, or the cookie is expired or forged.
        SessionUserMissingError: The cookie is valid but the user is gone
            (answered with 401 by the registered exception handler).
    """
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    username = decode_session(token) if token else None
    if username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return await deserialize_user(store, username)
