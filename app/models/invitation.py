from sqlalchemy import ForeignKey, DateTime, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import Optional, TYPE_CHECKING
from datetime import datetime
import enum
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.household import Household
    from app.models.user import User


class InvitationStatus(str, enum.Enum):
    """PENDING moves to exactly one of the other states and never changes again."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"


class HouseholdInvitation(BaseModel):
    """Invitation sent by a household owner to one specific registered user."""

    __tablename__ = "household_invitations"

    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False
    )
    sender_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    target_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    status: Mapped[InvitationStatus] = mapped_column(
        SQLEnum(InvitationStatus, name="invitation_status"),
        nullable=False,
        default=InvitationStatus.PENDING,
        index=True,
    )
    responded_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, default=None
    )

    household: Mapped["Household"] = relationship(
        "Household", back_populates="invitations", lazy="selectin"
    )
    sender: Mapped["User"] = relationship(
        "User", foreign_keys=[sender_id], lazy="selectin"
    )
    target_user: Mapped["User"] = relationship(
        "User", foreign_keys=[target_user_id], lazy="selectin"
    )

    @property
    def is_pending(self) -> bool:
        return self.status == InvitationStatus.PENDING
