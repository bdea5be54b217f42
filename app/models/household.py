from sqlalchemy import String, Integer, ForeignKey, DateTime, Enum as SQLEnum, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, TYPE_CHECKING
from datetime import datetime
import enum
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.user import User
    from app.models.invitation import HouseholdInvitation
    from app.models.finance import Expense, Saving, Salary


class HouseholdRole(str, enum.Enum):
    """Role of a user inside their household. Exactly one OWNER per household."""

    OWNER = "OWNER"
    MEMBER = "MEMBER"


class Household(BaseModel):
    """
    A group of users sharing a budget.
    Deleting a household removes its memberships, invitations and finance rows.
    """

    __tablename__ = "households"

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Code shared out-of-band to let someone join without an invitation
    invite_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    max_members: Mapped[int] = mapped_column(Integer, nullable=False, default=2)

    # Relationships
    members: Mapped[List["HouseholdMember"]] = relationship(
        "HouseholdMember",
        back_populates="household",
        cascade="all, delete-orphan",
        order_by="HouseholdMember.joined_at",
        lazy="selectin",
    )

    invitations: Mapped[List["HouseholdInvitation"]] = relationship(
        "HouseholdInvitation",
        back_populates="household",
        cascade="all, delete-orphan",
    )

    expenses: Mapped[List["Expense"]] = relationship(
        "Expense", back_populates="household", cascade="all, delete-orphan"
    )
    savings: Mapped[List["Saving"]] = relationship(
        "Saving", back_populates="household", cascade="all, delete-orphan"
    )
    salaries: Mapped[List["Salary"]] = relationship(
        "Salary", back_populates="household", cascade="all, delete-orphan"
    )

    @property
    def owner(self) -> "HouseholdMember | None":
        return next((m for m in self.members if m.role == HouseholdRole.OWNER), None)

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.max_members


class HouseholdMember(BaseModel):
    """
    Membership of one user in one household.
    `user_id` is unique: a user belongs to at most one household, and the
    database constraint is what settles concurrent create/join attempts.
    """

    __tablename__ = "household_members"

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True, nullable=False
    )
    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False
    )
    role: Mapped[HouseholdRole] = mapped_column(
        SQLEnum(HouseholdRole, name="household_role"), nullable=False, default=HouseholdRole.MEMBER
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    household: Mapped["Household"] = relationship("Household", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="membership", lazy="selectin")
