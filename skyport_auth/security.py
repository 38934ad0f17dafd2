"""
Security utilities: password hashing, token generation, and session cookies.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext provides hashing and constant-time verification
   - deprecated="auto" lets a future scheme take over transparently

2. OPAQUE TOKENS (verification and password reset)
   - Fixed-length strings over the 62-character alphanumeric alphabet
   - Drawn from the OS CSPRNG via the secrets module
   - Verification and reset tokens share the generator but are stored in
     separate fields, so one can never be redeemed as the other

3. SESSION COOKIES (JWT)
   - The only durable session identity is the username, carried in "sub"
   - The cookie is signed with SECRET_KEY using HS256
   - Expiry is enforced by the JWT "exp" claim, not by the auth core
"""

import secrets
import string
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from skyport_auth.config import settings


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using Argon2id.

    Args:
        plain_password: The user's raw password input.

    Returns:
        An Argon2 hash string (e.g., "$argon2id$v=19$m=65536,t=3,p=4$...").
    """
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored hash in constant time.

    Returns:
        True if the password matches, False otherwise (including when the
        stored value is not a recognised hash).
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# 2. Opaque Tokens
# ---------------------------------------------------------------------------

TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits


def generate_token(length: int | None = None) -> str:
    """
    Return an unguessable random token.

    Args:
        length: Number of characters. Defaults to TOKEN_LENGTH (30).
    """
    if length is None:
        length = settings.TOKEN_LENGTH
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


# ---------------------------------------------------------------------------
# 3. Session Cookies
# ---------------------------------------------------------------------------


def encode_session(username: str, expires_delta: timedelta | None = None) -> str:
    """
    Create the signed session cookie value for a username.

    Args:
        username: The session identity produced by the session service.
        expires_delta: Optional custom lifetime. Defaults to
                       SESSION_EXPIRE_MINUTES from settings.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
    payload = {
        "sub": username,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_session(token: str) -> str | None:
    """
    Return the username carried by a session cookie.

    Returns None when the cookie is expired, tampered with, or malformed.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    username = payload.get("sub")
    if not isinstance(username, str) or not username:
        return None
    return username
