import asyncio
import smtplib
from email.message import EmailMessage
from typing import TYPE_CHECKING, Optional

from .settings import EmailSettings
from ..utils.logger import get_logger

if TYPE_CHECKING:
    from .formatter import MessageFormatter


class EmailChannel:
    name = "email"

    def __init__(self, formatter: Optional["MessageFormatter"] = None, timeout: float = 30.0):
        self.formatter = formatter
        self.timeout = timeout
        self.logger = get_logger(__name__)

    def build_message(self, settings: EmailSettings, message: str, attachment: Optional[bytes]) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = settings.from_address
        msg["To"] = ", ".join(settings.to_addresses)
        if self.formatter:
            msg["Subject"] = self.formatter.format_email_subject(message)
        else:
            msg["Subject"] = f"Cluster Watch Notification: {message}"
        msg.set_content(f"{message}\r\n")

        if attachment:
            msg.add_attachment(attachment, maintype="application", subtype="json", filename="results.json")
        return msg

    async def send(self, message: str, attachment: Optional[bytes], settings: EmailSettings) -> bool:
        if not settings.smtp_server or not settings.from_address or not settings.to_addresses:
            self.logger.warning("Email settings are not valid")
            return False

        msg = self.build_message(settings, message, attachment)
        try:
            await asyncio.to_thread(self._deliver, settings, msg)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"Error sending email notification: {e}")
            return False

        self.logger.info(f"Email notification sent to {', '.join(settings.to_addresses)}")
        return True

    def _deliver(self, settings: EmailSettings, msg: EmailMessage) -> None:
        port = settings.smtp_port or 25
        with smtplib.SMTP(settings.smtp_server, port, timeout=self.timeout) as server:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            if settings.smtp_auth_user and settings.smtp_auth_password:
                server.login(settings.smtp_auth_user, settings.smtp_auth_password)
            server.send_message(msg)
