import os
from functools import lru_cache

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

# Set required environment variables for testing
os.environ["API_V1_STR"] = "/api/v1"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-0123456789"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SMTP_HOST"] = ""

from app.main import app
from app.core.ephemeral_store import EphemeralStore, get_redis_client
from app.database import get_db, enable_sqlite_foreign_keys
from app.models import Base, User
from app.security import get_password_hash
from app.services.account_service import AccountService
from app.services.household_service import HouseholdService
from app.services.invitation_service import InvitationService
from app.services.mail_service import MailService, get_mail_service
from app.services.session_service import SessionService

TEST_DATABASE_URL = "sqlite:///:memory:"
DEFAULT_PASSWORD = "testpass123"


class RecordingMailService(MailService):
    """Records every mail a service asks for. Delivery is disabled, so `flush` only logs."""

    def __init__(self):
        super().__init__(smtp_host="")
        self.sent = []

    def send(self, kind, recipient_email, template_vars):
        subject, body = self.render(kind, template_vars)
        self.sent.append(
            {"kind": kind, "to": recipient_email, "subject": subject, "body": body}
        )
        super().send(kind, recipient_email, template_vars)


@lru_cache
def _hash(password: str) -> str:
    # bcrypt is slow on purpose; hash each test password once per run
    return get_password_hash(password)


@pytest.fixture
def engine():
    """Fresh in-memory database per test. StaticPool keeps one shared connection."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Database session shared by the test and the app under test."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    yield session

    session.close()
    app.dependency_overrides.clear()


@pytest.fixture
def redis_client():
    """In-process Redis server behind the real redis-py client API."""
    client = fakeredis.FakeRedis(decode_responses=True)
    app.dependency_overrides[get_redis_client] = lambda: client
    yield client
    client.flushall()


@pytest.fixture
def store(redis_client):
    return EphemeralStore(redis_client)


@pytest.fixture
def session_service(redis_client):
    return SessionService(redis_client)


@pytest.fixture
def mail_service():
    service = RecordingMailService()
    app.dependency_overrides[get_mail_service] = lambda: service
    return service


@pytest.fixture
def household_service(db_session, mail_service):
    return HouseholdService(db_session, mail_service)


@pytest.fixture
def invitation_service(db_session, mail_service):
    return InvitationService(db_session, mail_service)


@pytest.fixture
def account_service(db_session, store, session_service):
    return AccountService(db_session, store, session_service)


@pytest.fixture
def client(db_session, redis_client, mail_service):
    """Create a FastAPI TestClient with database, Redis and mail overrides."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db_session):
    """Factory creating committed users."""

    def _make_user(email, first_name="Test", last_name="User", password=DEFAULT_PASSWORD):
        user = User(
            email=email,
            hashed_password=_hash(password),
            first_name=first_name,
            last_name=last_name,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("alex@example.com", first_name="Alex", last_name="Owner")


@pytest.fixture
def member(make_user):
    return make_user("sam@example.com", first_name="Sam", last_name="Member")


@pytest.fixture
def outsider(make_user):
    return make_user("kim@example.com", first_name="Kim", last_name="Outsider")


@pytest.fixture
def household(household_service, owner, member):
    """Household 'My Home' with `owner` as OWNER and `member` as MEMBER (full at 2)."""
    created = household_service.create_household(owner.id, "My Home")
    household_service.join_by_code(member.id, created.invite_code)
    return created


@pytest.fixture
def login(client):
    """Log in through the API and return bearer headers."""

    def _login(email, password=DEFAULT_PASSWORD):
        response = client.post(
            "/api/v1/auth/login",
            data={"username": email, "password": password},
        )
        assert response.status_code == 200, response.text
        token = response.json()["data"]["access_token"]
        return {"Authorization": f"Bearer {token}"}

    return _login
