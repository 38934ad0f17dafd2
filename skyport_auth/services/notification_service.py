"""
Notification service — the transactional emails of the account lifecycle.

Three messages are sent:
  - welcome:      after any successful registration
  - verification: after registration (when forceVerify is on) and on resend
  - reset:        when a password reset is requested

Each message is a template context handed to the mailer. Callers await the
send so ordering is preserved (the welcome email is attempted before
welcomeEmailSent is recorded), but a failure never undoes earlier writes.
"""

import asyncio
import logging
from typing import Any

from skyport_auth.config import settings
from skyport_auth.exceptions import ExternalTimeoutError, MailError
from skyport_auth.mail import Mailer

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        mailer: Mailer,
        base_url: str | None = None,
        timeout: float | None = None,
    ):
        self.mailer = mailer
        self.base_url = (base_url or settings.BASE_URL).rstrip("/")
        self.timeout = (
            timeout if timeout is not None else settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        )

    async def send_welcome(self, email: str, site_name: str) -> None:
        subject = f"Welcome to {site_name}"
        await self._send(email, subject, {
            "subject": subject,
            "message": "Your account has been created. Here is your login link:",
            "buttonUrl": f"{self.base_url}/login",
            "buttonText": "Login Now",
            "footer": f"We hope you enjoy using {site_name}",
            "name": site_name,
        })

    async def send_verification(self, email: str, token: str, site_name: str) -> None:
        link = f"{self.base_url}/verify/{token}"
        subject = "Verify Your Email"
        await self._send(email, subject, {
            "subject": subject,
            "message": (
                f"Thank you for registering on {site_name}. "
                "Please click the button below to verify your email address:"
            ),
            "buttonUrl": link,
            "buttonText": "Verify Email Address",
            "message_2": (
                "If you're having trouble clicking the button above, you can also "
                "verify your email by copying and pasting the following link into "
                "your browser:"
            ),
            "message_2_link": link,
            "footer": (
                f"If you didn't create an account on {site_name}, "
                "please disregard this email."
            ),
            "name": site_name,
        })

    async def send_password_reset(self, email: str, token: str, site_name: str) -> None:
        link = f"{self.base_url}/auth/reset/{token}"
        subject = "Password Reset Request"
        await self._send(email, subject, {
            "subject": subject,
            "message": (
                "You requested a password reset. "
                "Click the button below to reset your password:"
            ),
            "buttonUrl": link,
            "buttonText": "Reset Password",
            "message_2": "If the button above does not work, click the link below:",
            "message_2_link": link,
            "footer": (
                "If you did not request a password reset, please ignore this email. "
                "Your password will remain unchanged."
            ),
            "name": site_name,
        })

    async def _send(self, email: str, subject: str, context: dict[str, Any]) -> None:
        try:
            await asyncio.wait_for(
                self.mailer.send(email, subject, context), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            raise ExternalTimeoutError(f"Sending {subject!r} timed out", cause=exc) from exc
        except MailError:
            raise
        except Exception as exc:
            raise MailError(f"Sending {subject!r} failed", cause=exc) from exc
        logger.debug("Dispatched %r to %s", subject, email)
