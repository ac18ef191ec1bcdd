"""
SMTP delivery
Blocking smtplib calls run in a worker thread
"""

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from upskill.core.config import Config, get_config

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Mail could not be handed to the SMTP server"""


class EmailService:
    def __init__(self, config: Optional[Config] = None, timeout: int = 10):
        self.config = config or get_config()
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.config.EMAIL_HOST and self.config.EMAIL_USER)

    def _build_message(self, to: str, subject: str, html: str) -> MIMEMultipart:
        msg = MIMEMultipart()
        msg['From'] = self.config.EMAIL_FROM
        msg['To'] = to
        msg['Subject'] = subject
        msg.attach(MIMEText(html, 'html'))
        return msg

    def _send_sync(self, to: str, subject: str, html: str) -> None:
        msg = self._build_message(to, subject, html)
        context = ssl.create_default_context()
        host, port = self.config.EMAIL_HOST, self.config.EMAIL_PORT

        if port == 465:
            with smtplib.SMTP_SSL(host, port, context=context, timeout=self.timeout) as server:
                server.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
                server.sendmail(self.config.EMAIL_FROM, to, msg.as_string())
        else:
            with smtplib.SMTP(host, port, timeout=self.timeout) as server:
                server.starttls(context=context)
                server.login(self.config.EMAIL_USER, self.config.EMAIL_PASS)
                server.sendmail(self.config.EMAIL_FROM, to, msg.as_string())

    async def send_email(self, to: str, subject: str, html: str) -> None:
        """
        Send one HTML mail

        Raises:
            EmailDeliveryError: SMTP not configured or the server refused
        """
        if not self.configured:
            raise EmailDeliveryError("SMTP is not configured")

        try:
            await asyncio.to_thread(self._send_sync, to, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(f"Failed to send mail to {to}: {e}") from e

        logger.info(f"Mail sent to {to}: {subject}")
