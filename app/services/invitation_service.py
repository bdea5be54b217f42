import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from app.database import atomic
from app.models.household import HouseholdRole
from app.models.invitation import HouseholdInvitation, InvitationStatus
from app.repositories.household_repository import HouseholdRepository
from app.repositories.invitation_repository import InvitationRepository
from app.repositories.userRepository import UserRepository
from app.services.mail_service import MailKind, MailService
from app.core.exception import (
    ResourceNotFoundException,
    AuthorizationException,
    ConflictException,
)

logger = logging.getLogger(__name__)


class InvitationService:
    """
    Targeted household invitations.

    An invitation starts PENDING and moves exactly once to ACCEPTED,
    DECLINED or CANCELLED. Rows are never deleted except together with
    their household.
    """

    def __init__(self, db: Session, mail_service: Optional[MailService] = None):
        self.db = db
        self.invitation_repo = InvitationRepository(db)
        self.household_repo = HouseholdRepository(db)
        self.user_repo = UserRepository(db)
        self.mail_service = mail_service or MailService()

    def invite_to_household(self, owner_id: int, email: str) -> HouseholdInvitation:
        """
        Invite a registered user, by email, into the owner's household.

        Args:
            owner_id: ID of the inviting owner
            email: Email of the user to invite

        Returns:
            The new PENDING invitation

        Raises:
            ResourceNotFoundException: If the caller has no household or no
                user has that email
            AuthorizationException: If the caller is not the owner
            ConflictException: If the household is full, the target already
                has a household, or an invitation is already pending
        """
        membership = self.household_repo.get_membership(owner_id)
        if membership is None:
            raise ResourceNotFoundException(message="User is not a member of any household")
        if membership.role != HouseholdRole.OWNER:
            raise AuthorizationException("Only the household owner can send invitations")

        household = membership.household
        if self.household_repo.get_member_count(household.id) >= household.max_members:
            raise ConflictException("Household is full")

        target = self.user_repo.get_active_by_email(email)
        if target is None:
            raise ResourceNotFoundException(message="No user found with this email")

        if self.household_repo.get_membership(target.id) is not None:
            raise ConflictException("User already belongs to a household")

        if self.invitation_repo.get_pending_for_target(household.id, target.id) is not None:
            raise ConflictException("An invitation is already pending for this user")

        with atomic(self.db):
            invitation = self.invitation_repo.add(
                HouseholdInvitation(
                    household_id=household.id,
                    sender_id=owner_id,
                    target_user_id=target.id,
                    status=InvitationStatus.PENDING,
                )
            )

        self.db.refresh(invitation)
        logger.info(f"Invitation {invitation.id} sent from household {household.id} to user {target.id}")

        self.mail_service.send(
            MailKind.HOUSEHOLD_INVITATION,
            target.email,
            {
                "recipient_name": target.first_name,
                "sender_name": invitation.sender.display_name,
                "household_name": household.name,
            },
        )
        return invitation

    def respond_to_invitation(self, user_id: int, invitation_id: int, accept: bool) -> HouseholdInvitation:
        """
        Accept or decline an invitation addressed to the caller.

        Accepting re-checks capacity and the caller's membership because both
        may have changed since the invitation was sent.

        Raises:
            ResourceNotFoundException: If the invitation does not exist
            AuthorizationException: If the caller is not the invited user
            ConflictException: If the invitation is no longer pending, the
                household is full, or the caller already has a household
        """
        invitation = self.invitation_repo.get(invitation_id)
        if invitation is None:
            raise ResourceNotFoundException("Invitation", invitation_id)
        if invitation.target_user_id != user_id:
            logger.warning(f"User {user_id} tried to respond to invitation {invitation_id} addressed to someone else")
            raise AuthorizationException("This invitation is not addressed to you")
        if not invitation.is_pending:
            raise ConflictException("Invitation is no longer pending")

        household = invitation.household

        if accept:
            if self.household_repo.get_member_count(household.id) >= household.max_members:
                raise ConflictException("Household is full")
            if self.household_repo.get_membership(user_id) is not None:
                raise ConflictException("User already belongs to a household")

            with atomic(self.db, "User already belongs to a household"):
                self.invitation_repo.set_status(invitation, InvitationStatus.ACCEPTED)
                self.household_repo.add_member(household.id, user_id, HouseholdRole.MEMBER)
        else:
            with atomic(self.db):
                self.invitation_repo.set_status(invitation, InvitationStatus.DECLINED)

        self.db.refresh(invitation)
        logger.info(f"Invitation {invitation.id} {invitation.status.value.lower()} by user {user_id}")

        sender = invitation.sender
        self.mail_service.send(
            MailKind.INVITATION_RESPONSE,
            sender.email,
            {
                "recipient_name": sender.first_name,
                "responder_name": invitation.target_user.display_name,
                "household_name": household.name,
                "accepted": accept,
            },
        )
        return invitation

    def cancel_invitation(self, sender_id: int, invitation_id: int) -> HouseholdInvitation:
        """Withdraw a pending invitation. Only its sender may do this."""
        invitation = self.invitation_repo.get(invitation_id)
        if invitation is None:
            raise ResourceNotFoundException("Invitation", invitation_id)
        if invitation.sender_id != sender_id:
            raise AuthorizationException("Only the sender can cancel this invitation")
        if not invitation.is_pending:
            raise ConflictException("Invitation is no longer pending")

        with atomic(self.db):
            self.invitation_repo.set_status(invitation, InvitationStatus.CANCELLED)

        self.db.refresh(invitation)
        logger.info(f"Invitation {invitation_id} cancelled by user {sender_id}")
        return invitation

    def get_pending_invitations(self, user_id: int) -> List[HouseholdInvitation]:
        """Pending invitations addressed to the caller, newest first."""
        return self.invitation_repo.get_pending_for_user(user_id)
