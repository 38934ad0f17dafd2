"""
Pydantic schemas for the browser-facing auth forms.

The endpoints receive HTML form posts and answer with redirects, so these
models are bound with Form() rather than as JSON bodies. Pydantic validates
the fields before the handler runs; a missing field yields a 422.
"""

from email_validator import validate_email
from pydantic import BaseModel, Field, field_validator


def _check_email(value: str) -> str:
    # Validate the format only; the address is stored and matched as typed
    validate_email(value, check_deliverability=False)
    return value


class LoginForm(BaseModel):
    """Form body for POST /auth/login."""
    # Username, or email when it contains "@"
    identifier: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RegisterForm(BaseModel):
    """Form body for POST /auth/register."""
    username: str = Field(min_length=1, max_length=64)
    email: str
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def email_format(cls, value: str) -> str:
        return _check_email(value)


class EmailForm(BaseModel):
    """Form body for POST /resend-verification and POST /auth/reset-password."""
    email: str

    @field_validator("email")
    @classmethod
    def email_format(cls, value: str) -> str:
        return _check_email(value)


class NewPasswordForm(BaseModel):
    """Form body for POST /auth/reset/{token}."""
    password: str = Field(min_length=8)


class PageContext(BaseModel):
    """
    Data a page template needs. Rendering happens outside this service;
    GET page routes return this context as JSON.
    """
    name: str
    logo: str | bool = False
    token: str | None = None
