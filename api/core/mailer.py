"""
Email adapter for the FuelGo backend.

The default implementation uses SMTP with credentials taken from Settings.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
import ssl
from typing import Optional, Protocol

from .config import Settings

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send_email(self, subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
        ...


class SMTPMailer:
    """Send HTML e-mails (with a plain-text alternative) through an SMTP relay."""

    def __init__(self, host: str, port: int, user: str, password: str, sender: str = "") -> None:
        self.host = host
        self.port = port or 465
        self.user = user
        self.password = password
        self.sender = sender or user

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password and self.sender and self.port)

    def send_email(self, subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
        """
        Deliver one message. Returns False (and logs) when SMTP is not
        configured or the relay rejects the message.
        """
        if not self.is_configured():
            logger.warning("SMTP configuration missing; not sending to %s", to_email)
            return False
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        plain = text_body or html_body
        msg.attach(MIMEText(plain, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        try:
            if self.port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                    server.login(self.user, self.password)
                    server.sendmail(self.sender, [to_email], msg.as_string())
            else:
                with smtplib.SMTP(self.host, self.port) as server:
                    server.ehlo()
                    server.starttls(context=ssl.create_default_context())
                    server.login(self.user, self.password)
                    server.sendmail(self.sender, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send e-mail to %s: %s", to_email, exc)
            return False
        logger.info("E-mail sent to %s", to_email)
        return True


def build_mailer(settings: Settings) -> Optional[SMTPMailer]:
    """Return an SMTP mailer, or None when the transport is not configured."""
    mailer = SMTPMailer(
        settings.smtp_host,
        settings.smtp_port,
        settings.smtp_user,
        settings.smtp_password,
        settings.smtp_from,
    )
    if not mailer.is_configured():
        logger.warning("SMTP not configured; approval e-mails are disabled")
        return None
    return mailer
