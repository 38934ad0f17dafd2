"""
Self-registration endpoints.

These handlers are NOT included with the other routers at startup. The
registration policy watcher mounts them while forceVerify is true and
unmounts them otherwise, using REGISTRATION_ROUTES below.

  GET  /register        -> PageContext for the sign-up form
  POST /auth/register   -> /login?msg=AccountcreateEmailSent
                           409 {"detail": "User already exists"} on a taken
                           username or email
"""

from typing import Annotated

from fastapi import Depends, Form

from skyport_auth.dependencies import get_notifier, get_page_context, get_store
from skyport_auth.routers.auth import redirect
from skyport_auth.routing import RouteSpec
from skyport_auth.schemas.auth import PageContext, RegisterForm
from skyport_auth.services import account_service
from skyport_auth.services.notification_service import NotificationDispatcher
from skyport_auth.store import CredentialStore


async def register_page(page: PageContext = Depends(get_page_context)) -> PageContext:
    return page


async def register(
    form: Annotated[RegisterForm, Form()],
    store: CredentialStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """
    Create an account.

    AccountExistsError and LifecycleError propagate to the exception
    handlers (409 and 500 respectively).
    """
    await account_service.register(
        store, notifier, form.username, form.email, form.password,
    )
    return redirect("/login?msg=AccountcreateEmailSent")


REGISTRATION_ROUTES = (
    RouteSpec("GET", "/register", register_page, "register_page"),
    RouteSpec("POST", "/auth/register", register, "register"),
)
