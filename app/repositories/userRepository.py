from sqlalchemy.orm import Session
from typing import Optional
from app.models.user import User
from app.repositories.repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User operations. Emails are stored lowercased."""

    def __init__(self, db: Session):
        super().__init__(User, db)

    def get_active_by_email(self, email: str) -> Optional[User]:
        """Get a user by email, ignoring anonymized accounts."""
        return (
            self.db.query(User)
            .filter(User.email == email.lower(), User.deleted_at.is_(None))
            .first()
        )

    def email_exists(self, email: str) -> bool:
        return self.db.query(User).filter(User.email == email.lower()).count() > 0

    def update_password(self, user: User, hashed_password: str) -> User:
        user.hashed_password = hashed_password
        self.db.flush()
        return user
