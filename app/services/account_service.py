import json
import logging
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List
from sqlalchemy.orm import Session
from app.config import settings
from app.core.ephemeral_store import EphemeralStore
from app.database import atomic
from app.models.household import HouseholdRole
from app.models.user import User
from app.repositories.finance_repository import FinanceRepository
from app.repositories.household_repository import HouseholdRepository
from app.repositories.userRepository import UserRepository
from app.security import generate_unusable_password_hash
from app.services.session_service import SessionService
from app.core.exception import (
    ResourceNotFoundException,
    AuthorizationException,
    ConflictException,
    BadRequestException,
)

logger = logging.getLogger(__name__)

REQUEST_NOT_FOUND = "Delete account request not found or has expired."


def request_key(request_id: str) -> str:
    return f"delete_request:{request_id}"


def owner_index_key(owner_id: int) -> str:
    return f"delete_request_owner:{owner_id}"


def target_index_key(target_id: int) -> str:
    return f"delete_request_target:{target_id}"


class AccountService:
    """
    Account deletion, including the hand-over protocol for household owners.

    An owner who still has other members cannot delete their account
    directly. They name one member, who then either accepts (and becomes
    owner) or rejects (and the whole household goes). The pending request
    lives only in Redis as three keys sharing one TTL:

        delete_request:{request_id}        -> JSON payload (authoritative)
        delete_request_owner:{owner_id}    -> request_id
        delete_request_target:{target_id}  -> request_id

    The index keys are only hints. Every read goes back to the payload and
    cleans up indices whose payload is gone.
    """

    def __init__(self, db: Session, store: EphemeralStore, session_service: SessionService):
        self.db = db
        self.store = store
        self.session_service = session_service
        self.user_repo = UserRepository(db)
        self.household_repo = HouseholdRepository(db)
        self.finance_repo = FinanceRepository(db)

    def _get_user(self, user_id: int) -> User:
        user = self.user_repo.get(user_id)
        if user is None:
            raise ResourceNotFoundException("User", user_id)
        return user

    def anonymize_user(self, user: User) -> User:
        """
        Overwrite everything that identifies a user and mark the row deleted.

        Only stages the change; it commits with whatever transaction the
        caller has open.
        """
        user.email = f"deleted_{uuid.uuid4()}@deleted.invalid"
        user.hashed_password = generate_unusable_password_hash()
        user.first_name = "Deleted"
        user.last_name = "Account"
        user.deleted_at = datetime.now(timezone.utc)
        user.is_active = False
        self.db.flush()
        logger.info(f"User {user.id} anonymized")
        return user

    def delete_account(self, user_id: int) -> str:
        """
        Delete the caller's own account.

        What happens depends on the caller's place in a household:
            - no household: sessions killed, account anonymized
            - sole owner: household deleted as well
            - owner with other members: refused, a deletion request is needed
            - member: their personal data in the household and their
              membership are deleted before anonymizing

        Returns:
            Confirmation message

        Raises:
            AuthorizationException: If the caller owns a household that
                still has other members
        """
        user = self._get_user(user_id)
        membership = self.household_repo.get_membership(user_id)

        if membership is None:
            self.session_service.invalidate_all_sessions(user_id)
            with atomic(self.db):
                self.anonymize_user(user)
            logger.info(f"Account deleted (no household) for user {user_id}")
            return "Your account has been successfully deleted."

        household = membership.household
        household_id = household.id

        if membership.role == HouseholdRole.OWNER:
            if self.household_repo.get_member_count(household_id) > 1:
                logger.warning(f"Owner {user_id} tried to delete account with members left in household {household_id}")
                raise AuthorizationException(
                    "As a household owner with other members, you must send a deletion request first. "
                    "Use POST /users/me/delete-account-request."
                )
            self.session_service.invalidate_all_sessions(user_id)
            with atomic(self.db):
                self.household_repo.delete(household)
                self.anonymize_user(user)
            logger.info(f"Account deleted with household {household_id} for sole owner {user_id}")
            return "Your account and household have been successfully deleted."

        elif membership.role == HouseholdRole.MEMBER:
            self.session_service.invalidate_all_sessions(user_id)
            with atomic(self.db):
                self.finance_repo.delete_personal_data(household_id, user_id)
                self.household_repo.remove_member(membership)
                self.anonymize_user(user)
            logger.info(f"Account deleted (member of household {household_id}) for user {user_id}")
            return "Your account has been successfully deleted."

        raise ValueError(f"Unhandled household role: {membership.role}")

    def request_account_deletion(self, owner_id: int, target_member_id: int) -> str:
        """
        Ask another member to take over the household so the owner can leave.

        Args:
            owner_id: The household owner who wants their account deleted
            target_member_id: Member who must accept or reject

        Returns:
            The new request id (32 hex characters)

        Raises:
            AuthorizationException: If the caller is not an owner or targets themselves
            BadRequestException: If the owner is alone in the household
            ResourceNotFoundException: If the target is not in the household
            ConflictException: If the owner already has a pending request
        """
        membership = self.household_repo.get_membership(owner_id)
        if membership is None or membership.role != HouseholdRole.OWNER:
            raise AuthorizationException("Only the household owner can create a deletion request.")

        household_id = membership.household_id
        if self.household_repo.get_member_count(household_id) < 2:
            raise BadRequestException("No other members to send the request to. Use DELETE /users/me directly.")

        if owner_id == target_member_id:
            raise AuthorizationException("Cannot send a deletion request to yourself.")

        if self.household_repo.get_member_in_household(household_id, target_member_id) is None:
            raise ResourceNotFoundException(message="Target user is not a member of your household.")

        request_id = secrets.token_hex(16)
        payload = {
            "owner_id": owner_id,
            "target_member_id": target_member_id,
            "household_id": household_id,
            "requested_at": datetime.now(timezone.utc).isoformat(),
        }

        # The owner index is the claim: one live request per owner. An index
        # whose payload expired does not count and is overwritten.
        written = self.store.set_many_unless_claimed(
            owner_index_key(owner_id),
            {
                request_key(request_id): json.dumps(payload),
                owner_index_key(owner_id): request_id,
                target_index_key(target_member_id): request_id,
            },
            settings.DELETE_REQUEST_TTL_SECONDS,
            holder_key=request_key,
        )
        if not written:
            logger.warning(f"Owner {owner_id} already has a pending deletion request")
            raise ConflictException("A pending deletion request already exists. Cancel it before creating a new one.")

        logger.info(f"Delete account request {request_id} stored for owner {owner_id} targeting {target_member_id}")
        return request_id

    def get_pending_delete_account_requests(self, user_id: int) -> List[Dict[str, Any]]:
        """
        Deletion requests waiting for the caller's answer (zero or one).

        Stale keys found on the way are removed.
        """
        request_id = self.store.get(target_index_key(user_id))
        if request_id is None:
            return []

        payload = self.store.get_json(request_key(request_id))
        if payload is None:
            self.store.delete(target_index_key(user_id))
            logger.info(f"Removed stale deletion request index for user {user_id}")
            return []

        owner = self.user_repo.get(payload["owner_id"])
        household = self.household_repo.get(payload["household_id"])
        if owner is None or household is None:
            self.store.delete(
                request_key(request_id),
                target_index_key(user_id),
                owner_index_key(payload["owner_id"]),
            )
            logger.info(f"Removed deletion request {request_id} whose owner or household is gone")
            return []

        return [
            {
                "request_id": request_id,
                "owner_id": owner.id,
                "owner_first_name": owner.first_name,
                "owner_last_name": owner.last_name,
                "household_name": household.name,
                "requested_at": payload["requested_at"],
            }
        ]

    def respond_to_delete_account_request(self, user_id: int, request_id: str, accept: bool) -> str:
        """
        Accept or reject a deletion request addressed to the caller.

        The request is consumed before anything else changes. Of two
        concurrent answers only the one that actually deletes the payload key
        goes on; the other gets NotFound.

        Accept: the caller becomes owner, the former owner's personal data
        and membership are deleted and their account anonymized.
        Reject: the household is deleted and the owner's account anonymized.

        Returns:
            Message describing the outcome

        Raises:
            ResourceNotFoundException: If the request is missing, expired or
                was just consumed by someone else
            AuthorizationException: If the caller is not the addressed member
            ConflictException: If the household changed so that the request
                no longer applies
        """
        payload = self.store.get_json(request_key(request_id))
        if payload is None:
            raise ResourceNotFoundException(message=REQUEST_NOT_FOUND)

        if payload["target_member_id"] != user_id:
            logger.warning(f"User {user_id} tried to answer deletion request {request_id} addressed to someone else")
            raise AuthorizationException("You are not the target of this deletion request.")

        owner_id = payload["owner_id"]
        household_id = payload["household_id"]

        if self.store.delete(request_key(request_id)) == 0:
            raise ResourceNotFoundException(message=REQUEST_NOT_FOUND)
        self.store.delete(owner_index_key(owner_id), target_index_key(user_id))

        owner = self._get_user(owner_id)
        owner_membership = self.household_repo.get_member_in_household(household_id, owner_id)
        caller_membership = self.household_repo.get_member_in_household(household_id, user_id)
        if owner_membership is None or owner_membership.role != HouseholdRole.OWNER or caller_membership is None:
            logger.warning(f"Deletion request {request_id} no longer matches household {household_id}")
            raise ConflictException("The household has changed since this request was made.")

        self.session_service.invalidate_all_sessions(owner_id)

        if accept:
            with atomic(self.db):
                self.household_repo.set_role(owner_membership, HouseholdRole.MEMBER)
                self.household_repo.set_role(caller_membership, HouseholdRole.OWNER)
                self.finance_repo.delete_personal_data(household_id, owner_id)
                self.household_repo.remove_member(owner_membership)
                self.anonymize_user(owner)
            logger.info(f"Request {request_id} accepted: ownership moved to {user_id}, owner {owner_id} anonymized")
            return "You are now the household owner. The previous owner's account has been deleted."

        with atomic(self.db):
            self.household_repo.delete(owner_membership.household)
            self.anonymize_user(owner)
        logger.info(f"Request {request_id} rejected: household {household_id} deleted, owner {owner_id} anonymized")
        return "The deletion request has been rejected. The household and all its data have been deleted."

    def cancel_delete_account_request(self, owner_id: int) -> str:
        """
        Withdraw the owner's pending deletion request.

        Cancelling competes with the target's answer for the payload key, the
        same way two answers do. If the payload is already gone (answered,
        expired) the leftover owner index is removed and NotFound is raised.
        """
        request_id = self.store.get(owner_index_key(owner_id))
        if request_id is None:
            raise ResourceNotFoundException(message="No pending deletion request found.")

        payload = self.store.get_json(request_key(request_id))
        if self.store.delete(request_key(request_id)) == 0:
            self.store.delete(owner_index_key(owner_id))
            raise ResourceNotFoundException(message=REQUEST_NOT_FOUND)

        keys = [owner_index_key(owner_id)]
        if payload is not None:
            keys.append(target_index_key(payload["target_member_id"]))
        self.store.delete(*keys)

        logger.info(f"Delete account request {request_id} cancelled by owner {owner_id}")
        return "Your deletion request has been cancelled."
