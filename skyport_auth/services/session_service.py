"""
Session service — what a session remembers about its user.

A session's durable identity is the username and nothing else. Every
request re-reads the user from the store, so an edited or deleted account
is observed on the very next request. Results are never cached between
requests.
"""

from skyport_auth.exceptions import SessionUserMissingError
from skyport_auth.schemas.user import UserRecord
from skyport_auth.store import CredentialStore


def serialize_user(user: UserRecord) -> str:
    """Return the session identity for an authenticated user."""
    return user.username


async def deserialize_user(store: CredentialStore, username: str) -> UserRecord:
    """
    Load the live user record for a session identity.

    Raises:
        SessionUserMissingError: No user has that username any more. Callers
            treat the session as invalid, not as a server error.
    """
    user = await store.find_by_username(username)
    if user is None:
        raise SessionUserMissingError(username)
    return user
