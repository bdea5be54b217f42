from fastapi import APIRouter, Depends, status
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.invitation import InvitationCreate, InvitationRespond, InvitationResponse
from app.schemas.result import Result
from app.services.invitation_service import InvitationService
from app.services.mail_service import MailService, get_mail_service

router = APIRouter()


def get_invitation_service(
    db: Session = Depends(get_db),
    mail_service: MailService = Depends(get_mail_service),
) -> InvitationService:
    return InvitationService(db, mail_service)


@router.post("", response_model=Result[InvitationResponse], status_code=status.HTTP_201_CREATED)
async def invite_to_household(
    body: InvitationCreate,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
    mail_service: MailService = Depends(get_mail_service),
):
    """Invite a registered user by email (owner only). The invitee is mailed."""
    invitation = await run_in_threadpool(service.invite_to_household, current_user.id, body.email)
    data = InvitationResponse.from_invitation(invitation)
    await mail_service.flush()
    return Result.successful(data=data)


@router.get("/pending", response_model=Result[List[InvitationResponse]])
def get_pending_invitations(
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Invitations waiting for the current user's answer, newest first."""
    invitations = service.get_pending_invitations(current_user.id)
    return Result.successful(data=[InvitationResponse.from_invitation(i) for i in invitations])


@router.post("/{invitation_id}/respond", response_model=Result[InvitationResponse])
async def respond_to_invitation(
    invitation_id: int,
    body: InvitationRespond,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
    mail_service: MailService = Depends(get_mail_service),
):
    """Accept or decline an invitation. The sender is mailed the outcome."""
    invitation = await run_in_threadpool(
        service.respond_to_invitation, current_user.id, invitation_id, body.accept
    )
    data = InvitationResponse.from_invitation(invitation)
    await mail_service.flush()
    return Result.successful(data=data)


@router.delete("/{invitation_id}", response_model=Result[InvitationResponse])
def cancel_invitation(
    invitation_id: int,
    current_user: User = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Cancel a pending invitation (sender only)."""
    invitation = service.cancel_invitation(current_user.id, invitation_id)
    return Result.successful(data=InvitationResponse.from_invitation(invitation))
