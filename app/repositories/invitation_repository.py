from sqlalchemy.orm import Session
from sqlalchemy import select
from typing import List, Optional
from datetime import datetime, timezone
from app.models.invitation import HouseholdInvitation, InvitationStatus
from app.repositories.repository import BaseRepository


class InvitationRepository(BaseRepository[HouseholdInvitation]):
    """Repository for household invitations."""

    def __init__(self, db: Session):
        super().__init__(HouseholdInvitation, db)

    def get_pending_for_target(self, household_id: int, target_user_id: int) -> Optional[HouseholdInvitation]:
        """Pending invitation from a household to a user, if one exists."""
        stmt = select(HouseholdInvitation).where(
            HouseholdInvitation.household_id == household_id,
            HouseholdInvitation.target_user_id == target_user_id,
            HouseholdInvitation.status == InvitationStatus.PENDING,
        )
        return self.db.execute(stmt).scalars().first()

    def get_pending_for_user(self, user_id: int) -> List[HouseholdInvitation]:
        """All pending invitations addressed to a user, newest first."""
        stmt = (
            select(HouseholdInvitation)
            .where(
                HouseholdInvitation.target_user_id == user_id,
                HouseholdInvitation.status == InvitationStatus.PENDING,
            )
            .order_by(HouseholdInvitation.created_at.desc(), HouseholdInvitation.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def set_status(self, invitation: HouseholdInvitation, status: InvitationStatus) -> HouseholdInvitation:
        """Move an invitation out of PENDING and stamp the response time."""
        invitation.status = status
        invitation.responded_at = datetime.now(timezone.utc)
        self.db.flush()
        return invitation
