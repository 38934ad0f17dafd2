"""
Pydantic schemas for user records.

UserRecord is the shape of one entry in the "users" document. Field names
are snake_case in Python and camelCase in the stored document
(passwordHash, verificationToken, ...). Unknown keys written by other parts
of the platform are kept, so rewriting the users list never drops them.

UserResponse controls what user data leaves the service. The password hash
and both tokens are NEVER included.
"""

import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class UserRecord(BaseModel):
    """A stored user. Mutated only by the account lifecycle service."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    id: uuid.UUID
    username: str
    email: str
    password_hash: str
    is_admin: bool = False
    verified: bool = False
    # Present only while a verification email is outstanding
    verification_token: str | None = None
    # Present only while a password reset is pending
    reset_token: str | None = None
    welcome_email_sent: bool = False

    def to_document(self) -> dict:
        """Serialise for the store. A cleared reset token is omitted, not nulled."""
        document = self.model_dump(mode="json", by_alias=True)
        if self.reset_token is None:
            document.pop("resetToken", None)
        return document


class UserResponse(BaseModel):
    """Public representation of a user (never includes hash or tokens)."""
    id: uuid.UUID
    username: str
    email: str
    is_admin: bool
    verified: bool

    model_config = {"from_attributes": True}
