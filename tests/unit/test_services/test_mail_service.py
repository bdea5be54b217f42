import asyncio

import aiosmtplib
import pytest

from app.config import settings
from app.services.mail_service import MailKind, MailService

REMOVED_VARS = {"recipient_name": "Sam", "household_name": "My Home", "owner_name": "Alex Owner"}


class FakeSMTP:
    """Stands in for aiosmtplib.SMTP; records connections and messages."""

    connections = []
    refuse = False

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.logins = []
        self.messages = []
        FakeSMTP.connections.append(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def login(self, username, password):
        self.logins.append((username, password))

    async def send_message(self, message):
        if FakeSMTP.refuse:
            raise aiosmtplib.SMTPException("550 mailbox unavailable")
        self.messages.append(message)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.connections = []
    FakeSMTP.refuse = False
    monkeypatch.setattr(aiosmtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.mark.unit
class TestMailService:
    """Unit tests for MailService rendering, queueing and delivery."""

    def test_render_member_removed(self):
        subject, body = MailService(smtp_host="").render(MailKind.MEMBER_REMOVED, REMOVED_VARS)

        assert subject == "You have been removed from My Home"
        assert 'removed from the household "My Home" by Alex Owner' in body

    def test_send_only_queues(self, fake_smtp):
        service = MailService(smtp_host="smtp.example.com")

        service.send(MailKind.MEMBER_REMOVED, "sam@example.com", REMOVED_VARS)

        assert len(service.outbox) == 1
        assert fake_smtp.connections == []

    def test_flush_delivers_over_smtp(self, fake_smtp, monkeypatch):
        monkeypatch.setattr(settings, "SMTP_USERNAME", "mailer")
        monkeypatch.setattr(settings, "SMTP_PASSWORD", "secret")
        service = MailService(smtp_host="smtp.example.com")
        service.send(MailKind.MEMBER_REMOVED, "sam@example.com", REMOVED_VARS)

        delivered = asyncio.run(service.flush())

        assert delivered == 1
        assert service.outbox == []
        connection = fake_smtp.connections[0]
        assert connection.kwargs["hostname"] == "smtp.example.com"
        assert connection.kwargs["port"] == settings.SMTP_PORT
        assert connection.kwargs["timeout"] == settings.SMTP_TIMEOUT
        assert connection.logins == [("mailer", "secret")]
        message = connection.messages[0]
        assert message["To"] == "sam@example.com"
        assert message["From"] == settings.MAIL_FROM
        assert message["Subject"] == "You have been removed from My Home"

    def test_refused_mail_propagates_and_stays_queued(self, fake_smtp):
        fake_smtp.refuse = True
        service = MailService(smtp_host="smtp.example.com")
        service.send(MailKind.MEMBER_REMOVED, "sam@example.com", REMOVED_VARS)

        with pytest.raises(aiosmtplib.SMTPException):
            asyncio.run(service.flush())

        assert len(service.outbox) == 1

    def test_disabled_delivery_only_logs(self, fake_smtp):
        service = MailService(smtp_host="")
        service.send(MailKind.MEMBER_REMOVED, "sam@example.com", REMOVED_VARS)

        assert asyncio.run(service.flush()) == 1
        assert service.outbox == []
        assert fake_smtp.connections == []
