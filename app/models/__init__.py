from app.models.base import Base, BaseModel
from app.models.user import User
from app.models.household import Household, HouseholdMember, HouseholdRole
from app.models.invitation import HouseholdInvitation, InvitationStatus
from app.models.finance import Expense, ExpenseType, Saving, Salary

__all__ = [
    # Base
    "Base",
    "BaseModel",
    # User
    "User",
    # Household
    "Household",
    "HouseholdMember",
    "HouseholdRole",
    # Invitation
    "HouseholdInvitation",
    "InvitationStatus",
    # Finance
    "Expense",
    "ExpenseType",
    "Saving",
    "Salary",
]
