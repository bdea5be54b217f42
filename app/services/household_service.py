import logging
from typing import Optional
from sqlalchemy.orm import Session
from app.config import settings
from app.database import atomic
from app.models.household import Household, HouseholdMember, HouseholdRole
from app.repositories.household_repository import HouseholdRepository
from app.services.mail_service import MailKind, MailService
from app.core.exception import (
    ResourceNotFoundException,
    AuthorizationException,
    ConflictException,
)

logger = logging.getLogger(__name__)

ALREADY_MEMBER = "User already belongs to a household"
NO_HOUSEHOLD = "User is not a member of any household"


class HouseholdService:
    """Service layer for household membership and ownership."""

    def __init__(self, db: Session, mail_service: Optional[MailService] = None):
        self.db = db
        self.household_repo = HouseholdRepository(db)
        self.mail_service = mail_service or MailService()

    def _require_membership(self, user_id: int, message: str = NO_HOUSEHOLD) -> HouseholdMember:
        membership = self.household_repo.get_membership(user_id)
        if membership is None:
            raise ResourceNotFoundException(message=message)
        return membership

    def _require_owner(self, user_id: int, action: str) -> HouseholdMember:
        membership = self._require_membership(user_id)
        if membership.role != HouseholdRole.OWNER:
            logger.warning(f"User {user_id} tried to {action} without owning household {membership.household_id}")
            raise AuthorizationException(f"Only the household owner can {action}")
        return membership

    def _require_other_member(self, owner: HouseholdMember, target_id: int, self_message: str) -> HouseholdMember:
        if owner.user_id == target_id:
            raise AuthorizationException(self_message)
        target = self.household_repo.get_member_in_household(owner.household_id, target_id)
        if target is None:
            raise ResourceNotFoundException(message="Target user is not a member of your household")
        return target

    def create_household(self, user_id: int, name: str) -> Household:
        """
        Create a household with the caller as its owner.

        Args:
            user_id: ID of user creating the household
            name: Household name

        Returns:
            Created household with its single OWNER member

        Raises:
            ConflictException: If the user already belongs to a household,
                including when a concurrent request won the race
        """
        if self.household_repo.get_membership(user_id) is not None:
            raise ConflictException(ALREADY_MEMBER)

        with atomic(self.db, ALREADY_MEMBER):
            household = self.household_repo.add(
                Household(
                    name=name,
                    invite_code=self.household_repo.generate_invite_code(),
                    max_members=settings.HOUSEHOLD_MAX_MEMBERS,
                )
            )
            self.household_repo.add_member(household.id, user_id, HouseholdRole.OWNER)

        self.db.refresh(household)
        logger.info(f"Household {household.id} created by user {user_id}")
        return household

    def get_my_household(self, user_id: int) -> Household:
        """Household of the caller, members included."""
        membership = self._require_membership(user_id)
        return membership.household

    def join_by_code(self, user_id: int, invite_code: str) -> Household:
        """
        Join a household using its invite code.

        Raises:
            ConflictException: If already a member or the household is full
            ResourceNotFoundException: If no household has that code
        """
        if self.household_repo.get_membership(user_id) is not None:
            raise ConflictException("You already belong to a household")

        household = self.household_repo.get_by_invite_code(invite_code)
        if household is None:
            raise ResourceNotFoundException(message="Household not found")

        if self.household_repo.get_member_count(household.id) >= household.max_members:
            logger.warning(f"User {user_id} tried to join full household {household.id}")
            raise ConflictException("Household is full")

        with atomic(self.db, ALREADY_MEMBER):
            self.household_repo.add_member(household.id, user_id, HouseholdRole.MEMBER)

        self.db.refresh(household)
        logger.info(f"User {user_id} joined household {household.id} by invite code")
        return household

    def regenerate_invite_code(self, user_id: int) -> Household:
        """
        Replace the household's invite code. The old code stops working at once.

        Raises:
            ResourceNotFoundException: If the user has no household
            AuthorizationException: If the user is not the owner
        """
        membership = self._require_owner(user_id, "regenerate the invite code")
        household = membership.household

        with atomic(self.db, "Could not generate a unique invite code, please retry"):
            self.household_repo.update(
                household, {"invite_code": self.household_repo.generate_invite_code()}
            )

        logger.info(f"Invite code regenerated for household {household.id}")
        return household

    def leave_household(self, user_id: int) -> str:
        """
        Leave the current household.

        An owner alone in the household takes the household with them. An
        owner with other members must transfer ownership first.

        Returns:
            Message describing what happened

        Raises:
            ResourceNotFoundException: If the user has no household
            AuthorizationException: If an owner still has other members
        """
        membership = self._require_membership(user_id)
        household = membership.household
        household_id = household.id

        if membership.role == HouseholdRole.OWNER:
            if self.household_repo.get_member_count(household_id) > 1:
                logger.warning(f"Owner {user_id} tried to leave household {household_id} with members left")
                raise AuthorizationException(
                    "Owner must transfer ownership before leaving. Use /households/transfer-ownership first."
                )
            with atomic(self.db):
                self.household_repo.delete(household)
            logger.info(f"Household {household_id} deleted (last member left)")
            return "Household deleted (you were the only member)"

        with atomic(self.db):
            self.household_repo.remove_member(membership)
        logger.info(f"User {user_id} left household {household_id}")
        return "You have left the household"

    def remove_member(self, owner_id: int, target_user_id: int) -> str:
        """
        Remove another member from the owner's household and notify them.

        Raises:
            ResourceNotFoundException: If the caller has no household or the
                target is not in it
            AuthorizationException: If the caller is not the owner or targets
                themselves
        """
        owner = self._require_owner(owner_id, "remove members")
        target = self._require_other_member(
            owner,
            target_user_id,
            "Cannot remove yourself. Transfer the ownership or leave/delete the household instead.",
        )

        household = owner.household
        target_user = target.user
        owner_user = owner.user

        with atomic(self.db):
            self.household_repo.remove_member(target)

        logger.info(f"User {target_user_id} removed from household {household.id} by {owner_id}")

        self.mail_service.send(
            MailKind.MEMBER_REMOVED,
            target_user.email,
            {
                "recipient_name": target_user.first_name,
                "household_name": household.name,
                "owner_name": owner_user.display_name,
            },
        )
        return "Member removed from the household"

    def transfer_ownership(self, owner_id: int, target_user_id: int) -> Household:
        """
        Hand the OWNER role to another member; the caller becomes a MEMBER.

        Both role changes commit together so the household never has zero or
        two owners.
        """
        owner = self._require_owner(owner_id, "transfer ownership")
        target = self._require_other_member(
            owner, target_user_id, "Cannot transfer ownership to yourself"
        )

        with atomic(self.db):
            self.household_repo.set_role(owner, HouseholdRole.MEMBER)
            self.household_repo.set_role(target, HouseholdRole.OWNER)

        household = self.household_repo.get(owner.household_id)
        logger.info(f"Ownership of household {household.id} transferred from {owner_id} to {target_user_id}")
        return household
