"""SMTP mail adapter — implements MailPort.

Port 465 uses implicit TLS, port 587 upgrades with STARTTLS, any other port
follows the SMTP_SECURE setting. The blocking smtplib exchange runs in a
worker thread so the event loop keeps ticking.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from worksummary.config import Settings
    from worksummary.ports.mail_port import OutgoingEmail

logger = logging.getLogger(__name__)

_TIMEOUT_SECONDS = 30


class SMTPMailer:
    """SMTP implementation of MailPort."""

    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        from_email: str,
        from_name: str = "Project Management System",
        secure: bool = False,
    ) -> None:
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._from_email = from_email
        self._from_name = from_name
        self._secure = secure

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> SMTPMailer:
        if config is None:
            from worksummary.config import settings as config
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            user=config.SMTP_USER,
            password=config.SMTP_PASSWORD,
            from_email=config.SMTP_FROM,
            from_name=config.SMTP_FROM_NAME,
            secure=config.SMTP_SECURE,
        )

    def is_configured(self) -> bool:
        return all((self._host, self._port, self._user, self._password, self._from_email))

    def _use_implicit_tls(self) -> bool:
        if self._port == 465:
            return True
        if self._port == 587:
            return False
        return self._secure

    def _build_message(self, message: OutgoingEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = formataddr((self._from_name, self._from_email))
        msg["To"] = message.to
        msg.set_content("This email requires an HTML-capable mail client.")
        msg.add_alternative(message.html, subtype="html")
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        context = ssl.create_default_context()
        if self._use_implicit_tls():
            with smtplib.SMTP_SSL(
                self._host, self._port, timeout=_TIMEOUT_SECONDS, context=context,
            ) as server:
                server.login(self._user, self._password)
                server.send_message(msg)
            return

        with smtplib.SMTP(self._host, self._port, timeout=_TIMEOUT_SECONDS) as server:
            if self._port == 587:
                server.starttls(context=context)
            server.login(self._user, self._password)
            server.send_message(msg)

    async def send_email(self, message: OutgoingEmail) -> bool:
        if not self.is_configured():
            logger.error(
                "Failed to send email to %s: SMTP configuration not found or incomplete",
                message.to,
            )
            return False

        try:
            await asyncio.to_thread(self._deliver, self._build_message(message))
        except smtplib.SMTPAuthenticationError as exc:
            logger.error("SMTP authentication failed sending to %s: %s", message.to, exc)
            return False
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "Failed to send email to %s (user %s): %s",
                message.to, message.user_id, exc,
            )
            return False

        logger.info("Email sent to %s: %s", message.to, message.subject)
        return True
