"""
Account lifecycle service — registration, email verification, password reset.

This service exclusively owns the transitions of verified,
verificationToken and resetToken. Each operation is a read-modify-write of
the users document (see store.CredentialStore.update_first).

Registration flow:
  1. Read forceVerify from the site settings
  2. Hash the password, assign a UUID, and either issue a verification
     token (forceVerify on) or mark the account verified (forceVerify off)
  3. Persist the user, refusing under the users lock if the username or
     the email is taken (one combined outcome)
  4. Send the welcome email, then record welcomeEmailSent
  5. If verification is required, send the verification email and write
     the token back onto the freshly re-read record

  Creation and notification are not transactional: when an email fails the
  user stays persisted and the caller gets a LifecycleError.

Verification:
  verify_email()         consumes a verification token (no expiry)
  resend_verification()  issues a new token, invalidating the old one

Password reset:
  request_password_reset()   issues a reset token and emails it
  complete_password_reset()  consumes it and replaces the password hash

Token invariant:
  verificationToken is None whenever verified is True. The only path that
  sets verified also clears the token, and token write-backs skip users
  that are already verified.
"""

import logging
import uuid

from skyport_auth.exceptions import (
    AccountExistsError,
    AlreadyVerifiedError,
    CollaboratorError,
    InvalidTokenError,
    LifecycleError,
    UserNotFoundError,
)
from skyport_auth.schemas.user import UserRecord
from skyport_auth.security import generate_token, hash_password
from skyport_auth.services.notification_service import NotificationDispatcher
from skyport_auth.store import CredentialStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

async def register(
    store: CredentialStore,
    notifier: NotificationDispatcher,
    username: str,
    email: str,
    password: str,
) -> UserRecord:
    """
    Create a new account and send its welcome (and verification) email.

    Args:
        store: Credential store adapter.
        notifier: Sends the welcome and verification emails.
        username: Must not match any existing username.
        email: Must not match any existing email.
        password: Plaintext password (hashed before storage).

    Returns:
        The created user as it was last written.

    Raises:
        AccountExistsError: The username or the email is already registered.
            Which one is not disclosed. Nothing is written.
        LifecycleError: A store or mail call failed. The user may already
            be persisted.
    """
    try:
        site_settings = await store.current_site_settings()
        needs_verification = site_settings.force_verify

        user = UserRecord(
            id=uuid.uuid4(),
            username=username,
            email=email,
            password_hash=hash_password(password),
            verified=not needs_verification,
            verification_token=generate_token() if needs_verification else None,
        )
        try:
            await store.add_user_if_absent(user)
        except AccountExistsError:
            logger.info("Registration refused: username or email already exists")
            raise
        logger.info(
            "Registered user %s (%s), verification %s",
            user.id, username, "required" if needs_verification else "not required",
        )

        site_name = await store.site_name()
        await notifier.send_welcome(email, site_name)
        user.welcome_email_sent = True
        await store.update_user(user, _mark_welcome_sent)

        if needs_verification:
            token = user.verification_token
            await notifier.send_verification(email, token, site_name)
            await store.update_user(user, _set_pending_verification(token))
    except CollaboratorError as exc:
        logger.error("Registration of %s failed: %s", username, exc.detail)
        raise LifecycleError(exc) from exc

    return user


def _mark_welcome_sent(user: UserRecord) -> None:
    user.welcome_email_sent = True


def _set_pending_verification(token: str):
    def mutate(user: UserRecord) -> None:
        # Never resurrect a token on an account verified in the meantime
        if not user.verified:
            user.verification_token = token
    return mutate


# ---------------------------------------------------------------------------
# Email verification
# ---------------------------------------------------------------------------

async def verify_email(store: CredentialStore, token: str) -> UserRecord:
    """
    Consume a verification token.

    Raises:
        InvalidTokenError: No user holds this token. Nothing is written.
    """
    def consume(user: UserRecord) -> None:
        user.verified = True
        user.verification_token = None

    user = await store.update_first(
        lambda u: bool(token) and u.verification_token == token, consume
    )
    if user is None:
        logger.info("Verification refused: unknown token")
        raise InvalidTokenError("Invalid verification token")

    logger.info("Email verified for %s", user.username)
    return user


async def resend_verification(
    store: CredentialStore,
    notifier: NotificationDispatcher,
    email: str,
) -> UserRecord:
    """
    Issue a fresh verification token and email it.

    The previous token stops working as soon as the new one is stored.

    Raises:
        UserNotFoundError: No user has this email.
        AlreadyVerifiedError: The user is already verified.
    """
    user = await store.find_by_email(email)
    if user is None:
        raise UserNotFoundError(email)
    if user.verified:
        raise AlreadyVerifiedError(email)

    token = generate_token()
    updated = await store.update_user(user, _set_pending_verification(token))
    if updated is None:
        raise UserNotFoundError(email)
    if updated.verified:
        raise AlreadyVerifiedError(email)

    await notifier.send_verification(email, token, await store.site_name())
    logger.info("Verification email re-sent to %s", updated.username)
    return updated


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

async def request_password_reset(
    store: CredentialStore,
    notifier: NotificationDispatcher,
    email: str,
) -> UserRecord:
    """
    Issue a reset token (replacing any pending one) and email it.

    Raises:
        UserNotFoundError: No user has this email. Nothing is written.
    """
    token = generate_token()

    def issue(user: UserRecord) -> None:
        user.reset_token = token

    user = await store.update_first(lambda u: u.email == email, issue)
    if user is None:
        raise UserNotFoundError(email)

    await notifier.send_password_reset(email, token, await store.site_name())
    logger.info("Password reset requested for %s", user.username)
    return user


async def complete_password_reset(
    store: CredentialStore,
    token: str,
    new_password: str,
) -> UserRecord:
    """
    Consume a reset token and replace the user's password.

    The token is removed from the stored record entirely.

    Raises:
        InvalidTokenError: No user holds this token. Nothing is written.
    """
    password_hash = hash_password(new_password)

    def apply(user: UserRecord) -> None:
        user.password_hash = password_hash
        user.reset_token = None

    user = await store.update_first(
        lambda u: bool(token) and u.reset_token == token, apply
    )
    if user is None:
        logger.info("Password reset refused: unknown token")
        raise InvalidTokenError()

    logger.info("Password reset completed for %s", user.username)
    return user
