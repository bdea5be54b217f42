import pytest
from sqlalchemy.orm import Session
from app.services.authService import AuthService
from app.services.userService import UserService
from app.schemas.user import UserCreate, UserUpdate
from app.core.exception import (
    AuthenticationException,
    BadRequestException,
    DuplicateResourceException,
)
from app.security import decode_access_token


@pytest.fixture
def auth_service(db_session, session_service):
    return AuthService(db_session, session_service)


@pytest.mark.unit
class TestAuthService:
    """Unit tests for AuthService."""

    def test_register_success(self, auth_service):
        """Test successful user registration."""
        user_data = UserCreate(
            email="NewUser@Example.com",
            password="password123",
            first_name="New",
            last_name="User",
        )

        user = auth_service.register(user_data)

        assert user is not None
        assert user.email == "newuser@example.com"
        assert user.first_name == "New"
        assert user.is_active is True
        assert user.deleted_at is None
        assert user.hashed_password != "password123"  # Should be hashed

    def test_register_duplicate_email(self, auth_service, owner):
        """Test registration with duplicate email fails."""
        user_data = UserCreate(
            email="alex@example.com",
            password="password123",
            first_name="Other",
            last_name="Alex",
        )

        with pytest.raises(DuplicateResourceException):
            auth_service.register(user_data)

    def test_login_success(self, auth_service, session_service, owner):
        """Test successful login opens a session the token is bound to."""
        token = auth_service.login("alex@example.com", "testpass123")

        assert token.access_token is not None
        assert token.refresh_token is not None
        assert token.token_type == "bearer"

        payload = decode_access_token(token.access_token)
        assert payload is not None
        assert int(payload["sub"]) == owner.id
        assert payload["type"] == "access"
        assert session_service.is_session_active(payload["sid"], owner.id)

    def test_login_invalid_password(self, auth_service, owner):
        """Test login with incorrect password."""
        with pytest.raises(AuthenticationException) as exc_info:
            auth_service.login("alex@example.com", "wrongpassword")

        assert "Incorrect email or password" in str(exc_info.value)

    def test_login_unknown_email(self, auth_service):
        with pytest.raises(AuthenticationException):
            auth_service.login("ghost@example.com", "password123")

    def test_login_inactive_user(self, db_session: Session, auth_service, owner):
        """Test login with deactivated user account."""
        owner.is_active = False
        db_session.commit()

        with pytest.raises(AuthenticationException) as exc_info:
            auth_service.login("alex@example.com", "testpass123")

        assert "Account is deactivated" in str(exc_info.value)

    def test_refresh_access_token_success(self, auth_service, owner):
        """Refreshing keeps the same session."""
        login_token = auth_service.login("alex@example.com", "testpass123")

        new_token = auth_service.refresh_access_token(login_token.refresh_token)

        old_sid = decode_access_token(login_token.access_token)["sid"]
        assert decode_access_token(new_token.access_token)["sid"] == old_sid

    def test_refresh_with_invalid_token(self, auth_service):
        """Test refresh with invalid refresh token."""
        with pytest.raises(AuthenticationException) as exc_info:
            auth_service.refresh_access_token("invalid_token")

        assert "Could not validate" in str(exc_info.value)

    def test_refresh_after_sessions_invalidated(self, auth_service, session_service, owner):
        login_token = auth_service.login("alex@example.com", "testpass123")
        session_service.invalidate_all_sessions(owner.id)

        with pytest.raises(AuthenticationException):
            auth_service.refresh_access_token(login_token.refresh_token)

    def test_logout_ends_only_that_session(self, auth_service, session_service, owner):
        first = decode_access_token(auth_service.login("alex@example.com", "testpass123").access_token)
        second = decode_access_token(auth_service.login("alex@example.com", "testpass123").access_token)

        auth_service.logout(first["sid"], owner.id)

        assert not session_service.is_session_active(first["sid"], owner.id)
        assert session_service.is_session_active(second["sid"], owner.id)


@pytest.mark.unit
class TestUserService:
    """Unit tests for profile and password operations."""

    def test_update_profile(self, db_session, owner):
        user = UserService(db_session).update_profile(owner.id, UserUpdate(first_name="Alexandra"))

        assert user.first_name == "Alexandra"
        assert user.last_name == "Owner"

    def test_change_password_invalidates_sessions(self, db_session, session_service, owner):
        session_id, _ = session_service.create_session(owner.id)
        service = UserService(db_session, session_service)

        service.change_password(owner.id, "testpass123", "brand-new-pass")

        assert not session_service.is_session_active(session_id, owner.id)
        assert service.authenticate_user("alex@example.com", "brand-new-pass") is not None

    def test_change_password_wrong_old(self, db_session, session_service, owner):
        service = UserService(db_session, session_service)

        with pytest.raises(BadRequestException):
            service.change_password(owner.id, "not-my-password", "brand-new-pass")
