import enum
import logging
from email.mime.text import MIMEText
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from app.config import settings

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "mail"


class MailKind(str, enum.Enum):
    """Transactional mails the household flows send."""

    HOUSEHOLD_INVITATION = "household_invitation"
    INVITATION_RESPONSE = "invitation_response"
    MEMBER_REMOVED = "member_removed"


SUBJECTS = {
    MailKind.HOUSEHOLD_INVITATION: "You have been invited to join {household_name}",
    MailKind.INVITATION_RESPONSE: "Your invitation to {household_name} was answered",
    MailKind.MEMBER_REMOVED: "You have been removed from {household_name}",
}


class MailService:
    """
    Renders plain-text mails from Jinja2 templates and delivers them over SMTP.

    Services call `send` from synchronous code once their transaction has
    committed; that only renders and queues the mail. The router awaits
    `flush`, which delivers the queue with aiosmtplib. Delivery errors are not
    caught, so a failed mail fails the request even though the change it
    announces is already stored.

    When SMTP_HOST is empty mails are logged instead of delivered, so local
    development works without a mail server.
    """

    def __init__(self, smtp_host: Optional[str] = None):
        self.smtp_host = settings.SMTP_HOST if smtp_host is None else smtp_host
        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        self.outbox: List[MIMEText] = []

    def render(self, kind: MailKind, template_vars: Dict[str, Any]) -> tuple[str, str]:
        """Return (subject, body) for a mail kind."""
        subject = SUBJECTS[kind].format(**template_vars)
        body = self.env.get_template(f"{kind.value}.txt").render(**template_vars)
        return subject, body

    def send(self, kind: MailKind, recipient_email: str, template_vars: Dict[str, Any]) -> None:
        """Render a mail and queue it for the next `flush`."""
        subject, body = self.render(kind, template_vars)

        message = MIMEText(body, "plain", "utf-8")
        message["Subject"] = subject
        message["From"] = settings.MAIL_FROM
        message["To"] = recipient_email
        self.outbox.append(message)

    async def flush(self) -> int:
        """
        Deliver queued mails in order.

        Returns:
            Number of mails handed to the SMTP server (or logged when
            delivery is disabled)

        Raises:
            aiosmtplib.SMTPException: If the server refuses a mail. That mail
                and the ones after it stay queued.
        """
        delivered = 0
        while self.outbox:
            await self.deliver(self.outbox[0])
            self.outbox.pop(0)
            delivered += 1
        return delivered

    async def deliver(self, message: MIMEText) -> None:
        if not self.smtp_host:
            logger.info(f"Mail delivery disabled, skipping '{message['Subject']}' to {message['To']}")
            return

        async with aiosmtplib.SMTP(
            hostname=self.smtp_host,
            port=settings.SMTP_PORT,
            start_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT,
        ) as smtp:
            if settings.SMTP_USERNAME:
                await smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            await smtp.send_message(message)

        logger.info(f"Sent '{message['Subject']}' to {message['To']}")


def get_mail_service() -> MailService:
    """FastAPI dependency. One instance per request, shared by the services and the router."""
    return MailService()
