import logging
from sqlalchemy.orm import Session
from app.models.user import User
from app.services.userService import UserService
from app.services.session_service import SessionService
from app.schemas.user import UserCreate, Token
from app.security import create_access_token
from app.core.exception import AuthenticationException

logger = logging.getLogger(__name__)


class AuthService:
    """Service layer for authentication operations."""

    def __init__(self, db: Session, session_service: SessionService):
        self.db = db
        self.session_service = session_service
        self.user_service = UserService(db, session_service)

    def register(self, user_data: UserCreate) -> User:
        """
        Register a new user.
        Returns the created user.
        """
        return self.user_service.create_user(user_data)

    def login(self, email: str, password: str) -> Token:
        """
        Check credentials, open a session and return its tokens.

        Anonymized accounts cannot log in: their email was replaced and their
        password hash belongs to a secret nobody knows.
        """
        user = self.user_service.authenticate_user(email, password)

        if not user:
            logger.warning("Failed login attempt")
            raise AuthenticationException("Incorrect email or password")

        if not user.is_active or user.is_deleted:
            raise AuthenticationException("Account is deactivated")

        session_id, refresh_token = self.session_service.create_session(user.id)
        access_token = create_access_token(user.id, session_id)

        logger.info(f"User {user.id} logged in")
        return Token(
            access_token=access_token, token_type="bearer", refresh_token=refresh_token
        )

    def refresh_access_token(self, refresh_token: str) -> Token:
        """
        Issue a new access token for the session behind a refresh token.
        """
        session = self.session_service.get_session_for_refresh(refresh_token)
        if session is None:
            raise AuthenticationException("Could not validate refresh token")

        user_id, session_id = session
        user = self.user_service.get_user_by_id(user_id)
        if user is None or not user.is_active or user.is_deleted:
            raise AuthenticationException("Invalid user or inactive account")

        return Token(
            access_token=create_access_token(user.id, session_id),
            token_type="bearer",
            refresh_token=refresh_token,
        )

    def logout(self, session_id: str, user_id: int) -> None:
        self.session_service.remove_session(session_id, user_id)
        logger.info(f"User {user_id} logged out")
