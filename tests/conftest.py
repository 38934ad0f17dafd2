"""
Test fixtures for the auth service test suite.

  - db_engine / documents / store: fresh in-memory SQLite document store per test
  - mailer: RecordingMailer that captures every email instead of sending it
  - notifier: NotificationDispatcher over the recording mailer
  - client: async HTTP test client with the store and mailer injected
  - force_verify: turns forceVerify on in the test store
  - registration_client: client with the registration routes mounted

Key design decisions:
  - In-memory SQLite (sqlite+aiosqlite://) gives each test a completely
    fresh database. No state leaks between tests.
  - get_store and get_mailer are overridden through FastAPI's
    dependency_overrides, so route code runs exactly as in production.
  - The lifespan (and so the background watcher) is not started by the
    ASGI transport; tests drive the watcher's tick() directly.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("MAIL_BACKEND", "log")

from dataclasses import dataclass
from typing import Any

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from skyport_auth.database import Base
from skyport_auth.dependencies import get_mailer, get_store
from skyport_auth.mail import Mailer
from skyport_auth.main import app
from skyport_auth.routers.registration import REGISTRATION_ROUTES
from skyport_auth.routing import RouteTable
from skyport_auth.schemas.site_settings import SiteSettings
from skyport_auth.services.notification_service import NotificationDispatcher
from skyport_auth.services.registration_policy import RegistrationPolicyWatcher
from skyport_auth.store import CredentialStore, DocumentStore


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@dataclass
class SentEmail:
    to: str
    subject: str
    context: dict[str, Any]

    @property
    def token(self) -> str:
        """The token at the end of the email's button link."""
        return self.context["buttonUrl"].rsplit("/", 1)[1]


class RecordingMailer(Mailer):
    """Captures emails. Subjects listed in fail_subjects raise instead."""

    def __init__(self):
        self.sent: list[SentEmail] = []
        self.fail_subjects: set[str] = set()

    async def send(self, to_address: str, subject: str, context: dict[str, Any]) -> None:
        if subject in self.fail_subjects:
            raise ConnectionRefusedError("SMTP server unavailable")
        self.sent.append(SentEmail(to_address, subject, context))

    def with_subject(self, subject: str) -> list[SentEmail]:
        return [m for m in self.sent if m.subject == subject]


@pytest_asyncio.fixture
async def db_engine():
    """Create a fresh async engine with all tables for each test."""
    engine = create_async_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def documents(db_engine):
    """DocumentStore bound to the test engine."""
    session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return DocumentStore(session_factory)


@pytest_asyncio.fixture
async def store(documents):
    return CredentialStore(documents)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def notifier(mailer):
    return NotificationDispatcher(mailer, base_url="http://test")


@pytest_asyncio.fixture
async def force_verify(store):
    """Turn forceVerify on, as an administrator would."""
    await store.save_site_settings(SiteSettings(force_verify=True))


@pytest_asyncio.fixture
async def client(store, mailer):
    """
    Async HTTP test client with the test store and mailer injected.

    Registration routes mounted during a test are unmounted afterwards,
    since the app object is shared by the whole session.
    """
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_mailer] = lambda: mailer

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
    RouteTable(app).apply(frozenset(), REGISTRATION_ROUTES)


@pytest.fixture
def watcher(store):
    """Registration policy watcher bound to the shared app and the test store."""
    return RegistrationPolicyWatcher(
        store=store,
        route_table=RouteTable(app),
        registration_routes=REGISTRATION_ROUTES,
        interval=0.01,
    )


@pytest_asyncio.fixture
async def registration_client(client, force_verify, watcher):
    """Client with forceVerify on and the registration routes mounted."""
    await watcher.tick()
    return client
