"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging, table creation, registration policy watcher
  2. CORS middleware — allows frontend origins to make cross-origin requests
  3. Exception handlers — maps domain errors to HTTP responses
  4. Router registration — mounts the static auth endpoints

The registration endpoints are not mounted here. The registration policy
watcher mounts and unmounts them at runtime according to forceVerify.

Running locally:
    uvicorn skyport_auth.main:app --reload
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from skyport_auth.app_logging import setup_logging
from skyport_auth.config import settings
from skyport_auth.database import engine, Base
from skyport_auth.dependencies import get_store
from skyport_auth.exceptions import register_exception_handlers
from skyport_auth.routers import auth
from skyport_auth.routers.registration import REGISTRATION_ROUTES
from skyport_auth.routing import RouteTable
from skyport_auth.services.registration_policy import RegistrationPolicyWatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
      Configures logging, creates the documents table if it doesn't exist,
      and starts the registration policy watcher. The first tick runs
      immediately; a failing tick is logged and retried, never fatal.

    Shutdown:
      Stops the watcher, then disposes of the database engine.
    """
    # --- Startup ---
    setup_logging(settings.LOG_LEVEL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    watcher = RegistrationPolicyWatcher(
        store=get_store(),
        route_table=RouteTable(app),
        registration_routes=REGISTRATION_ROUTES,
    )
    watcher.start()
    app.state.registration_watcher = watcher
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await watcher.stop()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Local login, sessions, email verification, and password reset",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, tags=["Auth"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for deployment probes."""
    return {"status": "ok", "version": settings.APP_VERSION}
