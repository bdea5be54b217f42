from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.household import (
    HouseholdCreate,
    HouseholdResponse,
    HouseholdJoinRequest,
    TransferOwnershipRequest,
)
from app.schemas.result import Result, MessageResponse
from app.services.household_service import HouseholdService
from app.services.mail_service import MailService, get_mail_service

router = APIRouter()


def get_household_service(
    db: Session = Depends(get_db),
    mail_service: MailService = Depends(get_mail_service),
) -> HouseholdService:
    return HouseholdService(db, mail_service)


@router.post("", response_model=Result[HouseholdResponse], status_code=status.HTTP_201_CREATED)
def create_household(
    household_data: HouseholdCreate,
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
):
    """Create a new household with current user as owner."""
    household = service.create_household(current_user.id, household_data.name)
    return Result.successful(data=HouseholdResponse.from_household(household))


@router.get("/me", response_model=Result[HouseholdResponse])
def get_my_household(
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
):
    """Get the household the current user belongs to."""
    household = service.get_my_household(current_user.id)
    return Result.successful(data=HouseholdResponse.from_household(household))


@router.post("/join", response_model=Result[HouseholdResponse])
def join_household(
    join_data: HouseholdJoinRequest,
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
):
    """Join a household using an invite code."""
    household = service.join_by_code(current_user.id, join_data.invite_code)
    return Result.successful(data=HouseholdResponse.from_household(household))


@router.post("/regenerate-code", response_model=Result[HouseholdResponse])
def regenerate_invite_code(
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
):
    """Generate a new invite code for the household (owner only)."""
    household = service.regenerate_invite_code(current_user.id)
    return Result.successful(data=HouseholdResponse.from_household(household))


@router.post("/leave", response_model=Result[MessageResponse])
def leave_household(
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
):
    """Leave the household. An owner alone in it deletes the household."""
    message = service.leave_household(current_user.id)
    return Result.successful(data=MessageResponse(message=message))


@router.delete("/members/{user_id}", response_model=Result[MessageResponse])
async def remove_member(
    user_id: int,
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
    mail_service: MailService = Depends(get_mail_service),
):
    """Remove a member from the household (owner only). The removed member is mailed."""
    message = await run_in_threadpool(service.remove_member, current_user.id, user_id)
    await mail_service.flush()
    return Result.successful(data=MessageResponse(message=message))


@router.post("/transfer-ownership", response_model=Result[HouseholdResponse])
def transfer_ownership(
    body: TransferOwnershipRequest,
    current_user: User = Depends(get_current_user),
    service: HouseholdService = Depends(get_household_service),
):
    """Make another member the owner; the current owner becomes a member."""
    household = service.transfer_ownership(current_user.id, body.new_owner_id)
    return Result.successful(data=HouseholdResponse.from_household(household))
