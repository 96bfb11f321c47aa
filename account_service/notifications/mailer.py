"""Outbound HTML email for verification and password-reset messages."""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from ..config import Settings
from ..domain.errors import MailDeliveryError

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, body_html: str) -> None: ...


class SmtpMailer:
    """Deliver messages through an SMTP relay."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        user: str = "",
        password: str = "",
        starttls: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._user = user
        self._password = password
        self._starttls = starttls
        self._timeout = timeout

    def send(self, to: str, subject: str, body_html: str) -> None:
        """Send ``body_html`` to ``to``; transport failures raise ``MailDeliveryError``."""
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self._sender
        message["To"] = to
        message.attach(MIMEText(body_html, "html"))

        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
                if self._starttls:
                    server.starttls()
                if self._user:
                    server.login(self._user, self._password)
                server.sendmail(self._sender, [to], message.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("failed to send %r to %s: %s", subject, to, exc)
            raise MailDeliveryError(f"could not deliver mail to {to}") from exc
        logger.info("sent %r to %s", subject, to)


class LoggingMailer:
    """Development mailer that records the envelope instead of sending."""

    def send(self, to: str, subject: str, body_html: str) -> None:
        logger.warning("SMTP_HOST not configured; not sending %r to %s", subject, to)


def build_mailer(settings: Settings) -> Mailer:
    if not settings.smtp_host:
        return LoggingMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.mail_from,
        user=settings.smtp_user,
        password=settings.smtp_password,
        starttls=settings.smtp_starttls,
    )


def compose_verification_email(token: str, verify_url: str) -> tuple[str, str]:
    """Return the subject and HTML body asking the user to confirm their address."""
    link = html.escape(verify_url, quote=True)
    body = f"""Hi there,
<br />
Thank you for registering!
<br /><br />
Please verify your email by typing the following token:
<br />
Token: <b>{html.escape(token)}</b>
<br />
On the following page:
<a href="{link}">{link}</a>
<br /><br />
Have a pleasant day!"""
    return "Please verify your email", body


def compose_reset_email(reset_url: str, ttl_minutes: int) -> tuple[str, str]:
    """Return the subject and HTML body carrying a password-reset link."""
    link = html.escape(reset_url, quote=True)
    body = f"""Hi there,
<br />
We received a request to reset your password.
<br /><br />
Follow this link to choose a new one:
<a href="{link}">{link}</a>
<br />
The link can be used once and expires in {ttl_minutes} minutes.
<br /><br />
If you did not ask for a reset you can ignore this email."""
    return "Reset your password", body
