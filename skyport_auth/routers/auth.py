"""
Authentication router — login, logout, verification, and password reset.

These endpoints serve HTML forms, so they take form posts and answer with
303 redirects carrying a machine-readable code in the query string. The
login page reads those codes to pick a message:

  POST /auth/login            -> LOGIN_REDIRECT_PATH, or
                                 /login?err=UserNotVerified,
                                 /login?err=InvalidCredentials&state=failed
  GET  /auth/logout           -> /
  GET  /verify/{token}        -> /login?msg=EmailVerified | InvalidVerificationToken
  POST /resend-verification   -> /login?msg=UserNotFound | UserAlreadyVerified
                                            | VerificationEmailResent
  POST /auth/reset-password   -> /auth/reset-password?err=EmailNotFound
                                 /auth/reset-password?msg=PasswordSent | PasswordResetFailed
  POST /auth/reset/{token}    -> /login?msg=PasswordReset&state=success | failed

GET routes for the pages themselves return a PageContext as JSON; template
rendering happens elsewhere.

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any store operation and never logged.
  - The session cookie is httponly and carries only a signed username.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import RedirectResponse

from skyport_auth.config import settings
from skyport_auth.dependencies import (
    get_current_user,
    get_notifier,
    get_page_context,
    get_store,
)
from skyport_auth.exceptions import (
    AlreadyVerifiedError,
    AuthenticationError,
    CollaboratorError,
    InvalidTokenError,
    UserNotFoundError,
)
from skyport_auth.schemas.auth import EmailForm, LoginForm, NewPasswordForm, PageContext
from skyport_auth.schemas.user import UserRecord, UserResponse
from skyport_auth.security import encode_session
from skyport_auth.services import account_service, auth_service
from skyport_auth.services.notification_service import NotificationDispatcher
from skyport_auth.services.session_service import serialize_user
from skyport_auth.store import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter()


def redirect(url: str) -> RedirectResponse:
    """Post/Redirect/Get: always answer form posts with 303 See Other."""
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------

@router.post("/auth/login", summary="Log in with username or email")
async def login(
    form: Annotated[LoginForm, Form()],
    store: CredentialStore = Depends(get_store),
):
    """
    Check credentials and establish a session.

    - **identifier**: username, or email when it contains "@"
    - **password**: plaintext password
    """
    try:
        user = await auth_service.authenticate(store, form.identifier, form.password)
    except AuthenticationError as exc:
        if exc.user_not_verified:
            return redirect("/login?err=UserNotVerified")
        return redirect("/login?err=InvalidCredentials&state=failed")

    response = redirect(settings.LOGIN_REDIRECT_PATH)
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        encode_session(serialize_user(user)),
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/auth/logout", summary="End the session")
async def logout():
    response = redirect("/")
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return response


@router.get(
    "/auth/session",
    response_model=UserResponse,
    summary="Current session user",
)
async def current_session(user: UserRecord = Depends(get_current_user)):
    """Return the live record of the logged-in user (401 if none)."""
    return UserResponse.model_validate(user, from_attributes=True)


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

@router.get("/verify/{token}", summary="Consume an email verification token")
async def verify_email(token: str, store: CredentialStore = Depends(get_store)):
    try:
        await account_service.verify_email(store, token)
    except InvalidTokenError:
        return redirect("/login?msg=InvalidVerificationToken")
    return redirect("/login?msg=EmailVerified")


@router.get(
    "/resend-verification",
    response_model=PageContext,
    summary="Resend verification page",
)
async def resend_verification_page(page: PageContext = Depends(get_page_context)):
    return page


@router.post("/resend-verification", summary="Send a new verification email")
async def resend_verification(
    form: Annotated[EmailForm, Form()],
    store: CredentialStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    try:
        await account_service.resend_verification(store, notifier, form.email)
    except UserNotFoundError:
        return redirect("/login?msg=UserNotFound")
    except AlreadyVerifiedError:
        return redirect("/login?msg=UserAlreadyVerified")
    return redirect("/login?msg=VerificationEmailResent")


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

@router.get(
    "/auth/reset-password",
    response_model=PageContext,
    summary="Request password reset page",
)
async def reset_password_page(page: PageContext = Depends(get_page_context)):
    return page


@router.post("/auth/reset-password", summary="Email a password reset link")
async def request_password_reset(
    form: Annotated[EmailForm, Form()],
    store: CredentialStore = Depends(get_store),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    try:
        await account_service.request_password_reset(store, notifier, form.email)
    except UserNotFoundError:
        return redirect("/auth/reset-password?err=EmailNotFound")
    except CollaboratorError as exc:
        logger.error("Password reset request failed: %s", exc.detail, exc_info=exc.cause)
        return redirect("/auth/reset-password?msg=PasswordResetFailed")
    return redirect("/auth/reset-password?msg=PasswordSent")


@router.get(
    "/auth/reset/{token}",
    response_model=PageContext,
    summary="New password form",
)
async def reset_form_page(
    token: str,
    store: CredentialStore = Depends(get_store),
    page: PageContext = Depends(get_page_context),
):
    if await store.find_by_reset_token(token) is None:
        raise InvalidTokenError()
    return page.model_copy(update={"token": token})


@router.post("/auth/reset/{token}", summary="Set a new password")
async def complete_password_reset(
    token: str,
    form: Annotated[NewPasswordForm, Form()],
    store: CredentialStore = Depends(get_store),
):
    try:
        await account_service.complete_password_reset(store, token, form.password)
    except InvalidTokenError:
        return redirect("/login?msg=PasswordReset&state=failed")
    except CollaboratorError as exc:
        logger.error("Password reset failed: %s", exc.detail, exc_info=exc.cause)
        return redirect("/login?msg=PasswordReset&state=failed")
    return redirect("/login?msg=PasswordReset&state=success")
