# src/taskmail/mail/smtp_mailer.py

"""
SMTP delivery for notification digests.

smtplib is blocking, so each send runs in a worker thread; a slow server
only delays its own recipient's flush.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

logger = logging.getLogger(__name__)


class SmtpMailer:
    """Plain-text SMTP mailer (implicit TLS when secure, else STARTTLS if offered)."""

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        secure: bool = False,
        from_address: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.secure = secure
        self.from_address = from_address or user
        self.timeout = timeout

        self.enabled = bool(self.host and self.port and self.user and self.password)
        if self.enabled:
            logger.info("SMTP delivery configured: %s@%s:%s", self.user, self.host, self.port)
        else:
            logger.warning("SMTP not fully configured; mails will not be delivered")

    @classmethod
    def from_settings(cls, settings) -> SmtpMailer:
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            secure=settings.smtp_secure,
            from_address=settings.mail_from,
        )

    def build_message(self, to_address: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.from_address
        msg["To"] = to_address
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid()
        msg.set_content(body)
        return msg

    def _send_blocking(self, msg: EmailMessage) -> None:
        if self.secure:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
                server.login(self.user, self.password)
                server.send_message(msg)
            return

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            server.login(self.user, self.password)
            server.send_message(msg)

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        if not self.enabled:
            logger.info("SMTP not configured, skipping send to %s", to_address)
            return False

        msg = self.build_message(to_address, subject, body)
        try:
            await asyncio.to_thread(self._send_blocking, msg)
        except (smtplib.SMTPException, OSError):
            logger.exception("SMTP send failed to=%s", to_address)
            return False
        return True


class LoggingMailer:
    """Used when SMTP is not configured: logs the digest and reports it undelivered."""

    async def send(self, to_address: str, subject: str, body: str) -> bool:
        logger.info("SMTP not configured, skipping send to %s subject=%r", to_address, subject)
        logger.debug("Undelivered digest body for %s:\n%s", to_address, body)
        return False
