from pydantic import BaseModel, EmailStr
from typing import Optional
from datetime import datetime
from app.models.invitation import HouseholdInvitation, InvitationStatus


class InvitationCreate(BaseModel):
    email: EmailStr


class InvitationRespond(BaseModel):
    accept: bool


class InvitationResponse(BaseModel):
    id: int
    household_id: int
    household_name: str
    sender_id: int
    sender_first_name: str
    sender_last_name: str
    target_user_id: int
    status: InvitationStatus
    created_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None

    @classmethod
    def from_invitation(cls, invitation: HouseholdInvitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            household_id=invitation.household_id,
            household_name=invitation.household.name,
            sender_id=invitation.sender_id,
            sender_first_name=invitation.sender.first_name,
            sender_last_name=invitation.sender.last_name,
            target_user_id=invitation.target_user_id,
            status=invitation.status,
            created_at=invitation.created_at,
            responded_at=invitation.responded_at,
        )
