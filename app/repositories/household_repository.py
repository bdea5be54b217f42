from sqlalchemy.orm import Session
from sqlalchemy import select, func
from typing import Optional
from app.models.household import Household, HouseholdMember, HouseholdRole
from app.repositories.repository import BaseRepository
import secrets


class HouseholdRepository(BaseRepository[Household]):
    """Repository for households and their memberships."""

    def __init__(self, db: Session):
        super().__init__(Household, db)

    def get_by_invite_code(self, code: str) -> Optional[Household]:
        """Find household by invite code."""
        return self.db.query(Household).filter(Household.invite_code == code).first()

    def get_membership(self, user_id: int) -> Optional[HouseholdMember]:
        """Get the single membership a user holds, if any."""
        stmt = select(HouseholdMember).where(HouseholdMember.user_id == user_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_member_in_household(self, household_id: int, user_id: int) -> Optional[HouseholdMember]:
        """Get a user's membership only if it belongs to the given household."""
        stmt = select(HouseholdMember).where(
            HouseholdMember.household_id == household_id,
            HouseholdMember.user_id == user_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_member_count(self, household_id: int) -> int:
        """Get the number of members in a household."""
        stmt = select(func.count(HouseholdMember.id)).where(
            HouseholdMember.household_id == household_id
        )
        return self.db.execute(stmt).scalar_one()

    def add_member(self, household_id: int, user_id: int, role: HouseholdRole) -> HouseholdMember:
        """
        Stage a membership row.

        The unique constraint on `user_id` fires on flush if the user already
        belongs somewhere, including when another request inserted the row
        after our pre-checks ran.
        """
        member = HouseholdMember(household_id=household_id, user_id=user_id, role=role)
        return self.add(member)

    def remove_member(self, member: HouseholdMember) -> None:
        """Delete a membership row."""
        self.delete(member)

    def set_role(self, member: HouseholdMember, role: HouseholdRole) -> HouseholdMember:
        member.role = role
        self.db.flush()
        return member

    def generate_invite_code(self) -> str:
        """
        Generate an unused invite code.

        Returns:
            8 lowercase hex characters (4 random bytes)
        """
        while True:
            code = secrets.token_hex(4)
            if not self.get_by_invite_code(code):
                return code
