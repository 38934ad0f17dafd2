"""
Authentication service — credential checks for local login.

authenticate() is read-only: it never mutates a user record. The outcome is
either the full UserRecord or one of the AuthenticationError subclasses:

  NoSuchUserError            no user matches the identifier
  VerificationRequiredError  forceVerify is on and the user is unverified
  BadPasswordError           password does not match the stored hash

Check order:
  1. Resolve the identifier ("@" means email, otherwise username)
  2. If forceVerify is on, refuse unverified users
  3. Compare the password against the stored Argon2 hash

The verification gate runs before the password comparison, so an
unverified user learns they must verify even with a wrong password.
"""

import logging

from skyport_auth.exceptions import (
    BadPasswordError,
    NoSuchUserError,
    VerificationRequiredError,
)
from skyport_auth.schemas.user import UserRecord
from skyport_auth.security import verify_password
from skyport_auth.store import CredentialStore

logger = logging.getLogger(__name__)


async def authenticate(
    store: CredentialStore,
    identifier: str,
    password: str,
) -> UserRecord:
    """
    Verify a username/email and password pair.

    Args:
        store: Credential store adapter.
        identifier: Username, or email if it contains "@". Exact match only.
        password: Plaintext password to verify.

    Returns:
        The authenticated user.

    Raises:
        NoSuchUserError, VerificationRequiredError, BadPasswordError.
    """
    site_settings = await store.current_site_settings()
    user = await store.find_by_identifier(identifier)

    if user is None:
        logger.info("Login refused: unknown identifier")
        raise NoSuchUserError()

    if site_settings.force_verify and not user.verified:
        logger.info("Login refused for %s: email not verified", user.username)
        raise VerificationRequiredError()

    if not verify_password(password, user.password_hash):
        logger.info("Login refused for %s: bad password", user.username)
        raise BadPasswordError()

    logger.info("Login succeeded for %s", user.username)
    return user
