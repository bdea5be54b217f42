from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from app.models.household import Household, HouseholdMember, HouseholdRole


class HouseholdCreate(BaseModel):
    """Schema for creating a new household."""
    name: str = Field(..., min_length=1, max_length=100, description="Household name")


class HouseholdJoinRequest(BaseModel):
    """Schema for joining a household via invite code."""
    invite_code: str = Field(..., min_length=8, max_length=20, description="Household invite code")


class InviteCodeResponse(BaseModel):
    invite_code: str


class TransferOwnershipRequest(BaseModel):
    new_owner_id: int = Field(..., description="User ID of the member who becomes owner")


class HouseholdMemberResponse(BaseModel):
    """A member as seen from inside the household."""
    user_id: int
    email: str
    first_name: str
    last_name: str
    role: HouseholdRole
    joined_at: Optional[datetime] = None

    @classmethod
    def from_member(cls, member: HouseholdMember) -> "HouseholdMemberResponse":
        return cls(
            user_id=member.user_id,
            email=member.user.email,
            first_name=member.user.first_name,
            last_name=member.user.last_name,
            role=member.role,
            joined_at=member.joined_at,
        )


class HouseholdResponse(BaseModel):
    """Household with its members hydrated."""
    id: int
    uuid: str
    name: str
    invite_code: str
    max_members: int
    created_at: Optional[datetime] = None
    members: List[HouseholdMemberResponse] = []

    @classmethod
    def from_household(cls, household: Household) -> "HouseholdResponse":
        return cls(
            id=household.id,
            uuid=household.uuid,
            name=household.name,
            invite_code=household.invite_code,
            max_members=household.max_members,
            created_at=household.created_at,
            members=[HouseholdMemberResponse.from_member(m) for m in household.members],
        )
