"""
Outbound mail transport.

The auth core talks to email through one method:

    await mailer.send(to_address, subject, context)

where context is the template context built by the notification service.
Two transports are provided:

  - SMTPMailer: renders templates/email.txt with jinja2 and delivers it
    over SMTP. smtplib is blocking, so delivery runs in a worker thread.
  - LogMailer: writes the rendered message to the log instead of sending
    it. The default for local development.

Transport errors propagate to the caller unchanged; the notification
service is responsible for wrapping them in MailError.
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from skyport_auth.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)


def render_email(context: dict[str, Any], template: str = "email.txt") -> str:
    """Render the plain-text body for a notification context."""
    values = {"message_2": None, "message_2_link": None}
    values.update(context)
    return _env.get_template(template).render(**values)


class Mailer:
    """Interface for mail transports."""

    async def send(self, to_address: str, subject: str, context: dict[str, Any]) -> None:
        raise NotImplementedError


class SMTPMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = False,
        timeout: float | None = None,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = (
            timeout if timeout is not None else settings.EXTERNAL_CALL_TIMEOUT_SECONDS
        )

    async def send(self, to_address: str, subject: str, context: dict[str, Any]) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_address
        message["Subject"] = subject
        message.set_content(render_email(context))
        await asyncio.to_thread(self._deliver, message)
        logger.info("Email sent via SMTP: %s - %s", to_address, subject)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)


class LogMailer(Mailer):
    async def send(self, to_address: str, subject: str, context: dict[str, Any]) -> None:
        logger.info(
            "Email (not sent, MAIL_BACKEND=log) to %s - %s\n%s",
            to_address, subject, render_email(context),
        )


def get_mailer() -> Mailer:
    """Build the transport selected by MAIL_BACKEND."""
    backend = settings.MAIL_BACKEND.lower()
    if backend == "smtp":
        return SMTPMailer(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.MAIL_FROM,
            username=settings.SMTP_USERNAME,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_USE_TLS,
        )
    if backend == "log":
        return LogMailer()
    raise ValueError(f"Unknown MAIL_BACKEND {settings.MAIL_BACKEND!r}")
