from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from app.database import get_db
from app.dependencies import get_current_user, get_ephemeral_store, get_session_service
from app.models.user import User
from app.core.ephemeral_store import EphemeralStore
from app.schemas.user import UserResponse, UserUpdate, PasswordChange
from app.schemas.account import (
    DeleteAccountRequestCreate,
    DeleteAccountRequestCreated,
    DeleteAccountRequestRespond,
    PendingDeleteRequestResponse,
)
from app.schemas.result import Result, MessageResponse
from app.services.account_service import AccountService
from app.services.session_service import SessionService
from app.services.userService import UserService

router = APIRouter()


def get_account_service(
    db: Session = Depends(get_db),
    store: EphemeralStore = Depends(get_ephemeral_store),
    session_service: SessionService = Depends(get_session_service),
) -> AccountService:
    return AccountService(db, store, session_service)


@router.get("/me", response_model=Result[UserResponse])
def get_my_profile(current_user: User = Depends(get_current_user)):
    """
    Get current user's profile.

    Returns:
        Result[UserResponse]: Success result with user profile data
    """
    return Result.successful(data=UserResponse.model_validate(current_user))


@router.put("/me", response_model=Result[UserResponse])
def update_my_profile(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update current user's profile.

    Only provided fields will be updated.
    """
    user_service = UserService(db)
    updated_user = user_service.update_profile(current_user.id, user_update)
    return Result.successful(data=UserResponse.model_validate(updated_user))


@router.post("/me/change-password", response_model=Result[MessageResponse])
def change_my_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    session_service: SessionService = Depends(get_session_service),
):
    """
    Change current user's password.

    Requires the old password. Every session is ended, including this one.
    """
    user_service = UserService(db, session_service)
    message = user_service.change_password(
        current_user.id, password_data.old_password, password_data.new_password
    )
    return Result.successful(data=MessageResponse(message=message))


@router.delete("/me", response_model=Result[MessageResponse], status_code=status.HTTP_200_OK)
def delete_my_account(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """
    Delete current user's account.

    This action is permanent and cannot be undone. Owners of a household
    with other members must use a deletion request instead.
    """
    message = service.delete_account(current_user.id)
    return Result.successful(data=MessageResponse(message=message))


@router.post(
    "/me/delete-account-request",
    response_model=Result[DeleteAccountRequestCreated],
    status_code=status.HTTP_201_CREATED,
)
def request_account_deletion(
    body: DeleteAccountRequestCreate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Ask a household member to take over (or dissolve) the household so the owner can leave."""
    request_id = service.request_account_deletion(current_user.id, body.target_member_id)
    return Result.successful(data=DeleteAccountRequestCreated(request_id=request_id))


@router.get(
    "/me/pending-delete-requests",
    response_model=Result[List[PendingDeleteRequestResponse]],
)
def get_pending_delete_requests(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Deletion requests waiting for the current user's answer."""
    pending = service.get_pending_delete_account_requests(current_user.id)
    return Result.successful(data=[PendingDeleteRequestResponse(**p) for p in pending])


@router.post(
    "/me/delete-account-request/{request_id}/respond",
    response_model=Result[MessageResponse],
)
def respond_to_delete_request(
    request_id: str,
    body: DeleteAccountRequestRespond,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Accept (take ownership) or reject (dissolve the household) a deletion request."""
    message = service.respond_to_delete_account_request(current_user.id, request_id, body.accept)
    return Result.successful(data=MessageResponse(message=message))


@router.delete("/me/delete-account-request", response_model=Result[MessageResponse])
def cancel_delete_request(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
):
    """Withdraw the current owner's pending deletion request."""
    message = service.cancel_delete_account_request(current_user.id)
    return Result.successful(data=MessageResponse(message=message))
