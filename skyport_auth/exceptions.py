"""
Custom exception classes and FastAPI exception handlers.

The service layer raises these domain errors without importing HTTP
concepts. Routers either translate them into redirects (the browser-facing
flows) or let them bubble up to the handlers registered here, which turn
them into consistent JSON responses: {"detail": ..., "error_type": ...}.

Exception hierarchy:
    SkyportAuthError (base)
    ├── AuthenticationError            — login refused
    │   ├── NoSuchUserError            — identifier matches no user
    │   ├── VerificationRequiredError  — email not verified while forceVerify is on
    │   └── BadPasswordError           — hash comparison failed
    ├── AccountExistsError             — username or email already taken
    ├── UserNotFoundError              — no user with that email
    ├── AlreadyVerifiedError           — resend requested for a verified user
    ├── InvalidTokenError              — verification/reset token matches nobody
    ├── SessionUserMissingError        — session names a user that no longer exists
    ├── CollaboratorError              — store or mailer failed
    │   ├── StoreError
    │   ├── MailError
    │   └── ExternalTimeoutError
    └── LifecycleError                 — registration failed part way through
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class SkyportAuthError(Exception):
    """Base exception for all auth service domain errors."""

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Authentication outcomes
# ---------------------------------------------------------------------------

class AuthenticationError(SkyportAuthError):
    """
    Raised when a login attempt is refused.

    Attributes:
        user_not_verified: True only for VerificationRequiredError, so the
            caller can route to a distinct outcome without isinstance checks.
    """

    user_not_verified = False


class NoSuchUserError(AuthenticationError):
    """Raised when no user matches the submitted username or email."""

    def __init__(self):
        super().__init__("Incorrect username or email")


class VerificationRequiredError(AuthenticationError):
    """Raised when forceVerify is on and the user has not verified their email."""

    user_not_verified = True

    def __init__(self):
        super().__init__("Email not verified")


class BadPasswordError(AuthenticationError):
    """Raised when the password does not match the stored hash."""

    def __init__(self):
        super().__init__("Incorrect password")


# ---------------------------------------------------------------------------
# Account lifecycle outcomes
# ---------------------------------------------------------------------------

class AccountExistsError(SkyportAuthError):
    """
    Raised when registering with a taken username or email.

    Deliberately does not say which of the two collided.
    """

    def __init__(self):
        super().__init__("User already exists")


class UserNotFoundError(SkyportAuthError):
    """Raised when no user is registered under the given email."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("User not found")


class AlreadyVerifiedError(SkyportAuthError):
    """Raised when a verification resend is requested for a verified user."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("User already verified")


class InvalidTokenError(SkyportAuthError):
    """Raised when a verification or reset token matches no user."""

    def __init__(self, detail: str = "Invalid or expired token."):
        super().__init__(detail)


class SessionUserMissingError(SkyportAuthError):
    """Raised when a session refers to a username that no longer exists."""

    def __init__(self, username: str):
        self.username = username
        super().__init__("Session is no longer valid")


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------

class CollaboratorError(SkyportAuthError):
    """
    Raised when the document store or the mail transport fails.

    Attributes:
        cause: The underlying exception, if any.
    """

    def __init__(self, detail: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__(detail)


class StoreError(CollaboratorError):
    """Raised when a document store read or write fails."""


class MailError(CollaboratorError):
    """Raised when an email could not be handed to the mail transport."""


class ExternalTimeoutError(CollaboratorError):
    """Raised when a store or mail call exceeds EXTERNAL_CALL_TIMEOUT_SECONDS."""


class LifecycleError(SkyportAuthError):
    """
    Raised when registration fails after validation.

    The user record may already be persisted at this point: creation and
    notification are not transactional.
    """

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__("Account creation failed")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each handler maps a domain exception to an HTTP status code and the
    JSON shape {"detail": ..., "error_type": ...}. Collaborator failures are
    logged with their cause and answered with a generic message.
    """

    @app.exception_handler(AccountExistsError)
    async def account_exists_handler(
        request: Request, exc: AccountExistsError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=409,  # Conflict — the resource already exists
            content={"detail": exc.detail, "error_type": "already_exists"},
        )

    @app.exception_handler(InvalidTokenError)
    async def invalid_token_handler(
        request: Request, exc: InvalidTokenError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=404,
            content={"detail": exc.detail, "error_type": "invalid_token"},
        )

    @app.exception_handler(SessionUserMissingError)
    async def session_user_missing_handler(
        request: Request, exc: SessionUserMissingError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content={"detail": exc.detail, "error_type": "invalid_session"},
        )

    @app.exception_handler(CollaboratorError)
    async def collaborator_error_handler(
        request: Request, exc: CollaboratorError
    ) -> JSONResponse:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.detail,
            exc_info=exc.cause or exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )

    @app.exception_handler(LifecycleError)
    async def lifecycle_error_handler(
        request: Request, exc: LifecycleError
    ) -> JSONResponse:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.detail,
            exc_info=exc.cause,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error_type": "internal"},
        )
