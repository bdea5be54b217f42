"""
Household-scoped money records.

Only the columns the membership and account code filter on are modelled
here; the CRUD around them lives elsewhere.
"""
from sqlalchemy import String, Integer, Numeric, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import TYPE_CHECKING
from decimal import Decimal
import enum
from app.models.base import BaseModel

if TYPE_CHECKING:
    from app.models.household import Household


class ExpenseType(str, enum.Enum):
    PERSONAL = "PERSONAL"
    SHARED = "SHARED"


class Expense(BaseModel):
    __tablename__ = "expenses"

    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_by_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    type: Mapped[ExpenseType] = mapped_column(
        SQLEnum(ExpenseType, name="expense_type"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    household: Mapped["Household"] = relationship("Household", back_populates="expenses")


class Saving(BaseModel):
    __tablename__ = "savings"

    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_shared: Mapped[bool] = mapped_column(default=False)

    household: Mapped["Household"] = relationship("Household", back_populates="savings")


class Salary(BaseModel):
    __tablename__ = "salaries"

    household_id: Mapped[int] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    household: Mapped["Household"] = relationship("Household", back_populates="salaries")
