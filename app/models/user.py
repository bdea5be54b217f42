from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import relationship, Mapped, mapped_column
from typing import Optional, TYPE_CHECKING
from datetime import datetime
from app.models.base import BaseModel
if TYPE_CHECKING:
    from app.models.household import HouseholdMember


class User(BaseModel):
    """
    Account holder.

    Deleted accounts are never removed: their identifying fields are
    overwritten and `deleted_at` is set, so expense history that points at
    the row stays intact.
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))

    # Status
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    # Relationships
    membership: Mapped[Optional["HouseholdMember"]] = relationship(
        "HouseholdMember",
        back_populates="user",
        uselist=False,
        lazy="selectin"
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
