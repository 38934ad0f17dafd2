"""
Runtime route management.

Most routes are mounted once at startup. A few are switched on and off
while the app runs (self-registration follows the forceVerify setting).
This module is the mechanism for that:

  - RouteSpec describes one (method, path) -> endpoint route
  - RouteTable adds and removes RouteSpecs on a live FastAPI app

Deciding *which* routes should exist is left to the caller
(see services.registration_policy).
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from fastapi import FastAPI
from fastapi.routing import APIRoute

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteSpec:
    method: str
    path: str
    endpoint: Callable
    name: str

    @property
    def key(self) -> tuple[str, str]:
        return self.method, self.path


class RouteTable:
    """Idempotent add/remove of routes on a running application."""

    def __init__(self, app: FastAPI):
        self.app = app

    def find(self, spec: RouteSpec) -> APIRoute | None:
        for route in self.app.router.routes:
            if (
                isinstance(route, APIRoute)
                and route.path == spec.path
                and spec.method in route.methods
            ):
                return route
        return None

    def present(self, managed: Iterable[RouteSpec]) -> frozenset[tuple[str, str]]:
        """Snapshot of which managed routes are currently mounted."""
        return frozenset(spec.key for spec in managed if self.find(spec) is not None)

    def apply(self, desired: Iterable[RouteSpec], managed: Iterable[RouteSpec]) -> bool:
        """
        Make the mounted subset of managed equal to desired.

        Routes outside managed are never touched. Re-applying the same
        desired set is a no-op.

        Returns:
            True if any route was added or removed.
        """
        desired = frozenset(desired)
        changed = False
        for spec in managed:
            route = self.find(spec)
            if spec in desired and route is None:
                self.app.router.add_api_route(
                    spec.path, spec.endpoint, methods=[spec.method], name=spec.name,
                )
                logger.info("Mounted %s %s", spec.method, spec.path)
                changed = True
            elif spec not in desired and route is not None:
                self.app.router.routes.remove(route)
                logger.info("Unmounted %s %s", spec.method, spec.path)
                changed = True
        if changed:
            # The cached OpenAPI document no longer matches the route list
            self.app.openapi_schema = None
        return changed
