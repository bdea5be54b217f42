import logging
from sqlalchemy.orm import Session
from typing import Optional
from app.models.user import User
from app.database import atomic
from app.repositories.userRepository import UserRepository
from app.schemas.user import UserCreate, UserUpdate
from app.security import get_password_hash, verify_password
from app.services.session_service import SessionService
from app.core.exception import (
    ResourceNotFoundException,
    DuplicateResourceException,
    BadRequestException,
)

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for user operations."""

    def __init__(self, db: Session, session_service: Optional[SessionService] = None):
        self.db = db
        self.user_repo = UserRepository(db)
        self.session_service = session_service

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return self.user_repo.get(user_id)

    def get_profile(self, user_id: int) -> User:
        user = self.user_repo.get(user_id)
        if user is None or user.is_deleted:
            raise ResourceNotFoundException("User", user_id)
        return user

    def create_user(self, user_data: UserCreate) -> User:
        """
        Create a new user.

        Validates that the email is unique and hashes the password before storing.
        """
        if self.user_repo.email_exists(user_data.email):
            raise DuplicateResourceException("User", user_data.email)

        user = User(
            email=user_data.email.lower(),
            hashed_password=get_password_hash(user_data.password),
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            is_active=True,
        )

        with atomic(self.db, f"User with identifier '{user_data.email}' already exists."):
            self.user_repo.add(user)

        self.db.refresh(user)
        logger.info(f"User {user.id} registered")
        return user

    def update_profile(self, user_id: int, user_data: UserUpdate) -> User:
        """Update first/last name. Only provided fields change."""
        user = self.get_profile(user_id)

        with atomic(self.db):
            self.user_repo.update(user, user_data.model_dump(exclude_unset=True, exclude_none=True))

        self.db.refresh(user)
        logger.info(f"Profile updated for user {user_id}")
        return user

    def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user by email and password.
        Returns User if credentials are valid, None otherwise.
        """
        user = self.user_repo.get_active_by_email(email)

        if not user:
            return None

        if not verify_password(password, user.hashed_password):
            return None

        return user

    def change_password(self, user_id: int, old_password: str, new_password: str) -> str:
        """
        Change the password and log the user out of every session.

        Raises:
            BadRequestException: If the old password does not match
        """
        user = self.get_profile(user_id)

        if not verify_password(old_password, user.hashed_password):
            logger.warning(f"Incorrect current password for user {user_id}")
            raise BadRequestException("Old password is incorrect")

        with atomic(self.db):
            self.user_repo.update_password(user, get_password_hash(new_password))

        invalidated = 0
        if self.session_service is not None:
            invalidated = self.session_service.invalidate_all_sessions(user_id)

        logger.info(f"Password changed for user {user_id}, invalidated {invalidated} sessions")
        return "Password changed successfully. Please log in again."
