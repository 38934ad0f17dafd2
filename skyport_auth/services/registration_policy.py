"""
Registration policy — keeps self-registration in step with forceVerify.

A background task re-reads the site settings every
REGISTRATION_POLL_SECONDS and reconciles the registration routes:

  forceVerify true   -> GET /register and POST /auth/register are mounted
  forceVerify false  -> both are unmounted
  settings absent    -> the document is created with forceVerify false

The reconciliation is level-triggered: each tick applies the full desired
state, so an administrator can edit the settings document at any time and
repeated ticks with unchanged settings change nothing. Ticks never overlap;
the next sleep starts only after the previous tick has finished.
"""

import asyncio
import logging
from typing import Iterable

from skyport_auth.config import settings
from skyport_auth.routing import RouteSpec, RouteTable
from skyport_auth.schemas.site_settings import SiteSettings
from skyport_auth.store import CredentialStore

logger = logging.getLogger(__name__)


def desired_registration_routes(
    site_settings: SiteSettings, registration_routes: Iterable[RouteSpec]
) -> frozenset[RouteSpec]:
    """Registration routes that should be mounted under these settings."""
    if site_settings.force_verify:
        return frozenset(registration_routes)
    return frozenset()


class RegistrationPolicyWatcher:
    def __init__(
        self,
        store: CredentialStore,
        route_table: RouteTable,
        registration_routes: Iterable[RouteSpec],
        interval: float | None = None,
    ):
        self.store = store
        self.route_table = route_table
        self.registration_routes = frozenset(registration_routes)
        self.interval = interval if interval is not None else settings.REGISTRATION_POLL_SECONDS
        self._task: asyncio.Task | None = None

    async def tick(self) -> frozenset[tuple[str, str]]:
        """
        Run one reconciliation.

        Returns:
            The (method, path) pairs of registration routes mounted afterwards.
        """
        site_settings, _ = await self.store.ensure_site_settings()
        desired = desired_registration_routes(site_settings, self.registration_routes)
        if self.route_table.apply(desired, self.registration_routes):
            logger.info(
                "Self-registration %s (forceVerify=%s)",
                "enabled" if desired else "disabled", site_settings.force_verify,
            )
        return self.route_table.present(self.registration_routes)

    async def run(self) -> None:
        """Tick forever. A failed tick is logged and retried on the next one."""
        while True:
            try:
                await self.tick()
            except Exception:
                logger.exception("Registration policy check failed")
            await asyncio.sleep(self.interval)

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="registration-policy")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
