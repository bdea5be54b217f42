from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.user import UserCreate, UserResponse, Token, RefreshTokenRequest
from app.schemas.result import Result, MessageResponse
from app.services.authService import AuthService
from app.services.session_service import SessionService
from app.dependencies import get_session_service, get_token_payload

router = APIRouter()


@router.post(
    "/register",
    response_model=Result[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    session_service: SessionService = Depends(get_session_service),
):
    """
    Register a new user.

    - **email**: Valid email address (unique)
    - **password**: Password (min 8 chars)
    - **first_name** / **last_name**: Display name

    Returns:
        Result[UserResponse]: Success result with created user data
    """
    auth_service = AuthService(db, session_service)
    user = auth_service.register(user_data)
    return Result.successful(data=UserResponse.model_validate(user))


@router.post("/login", response_model=Result[Token])
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    session_service: SessionService = Depends(get_session_service),
):
    """
    Login with email (sent as the OAuth2 `username` field) and password.

    Returns:
        Result[Token]: Access token plus the refresh token of the new session
    """
    auth_service = AuthService(db, session_service)
    token = auth_service.login(form_data.username, form_data.password)
    return Result.successful(data=token)


@router.post("/refresh", response_model=Result[Token])
def refresh_token(
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
    session_service: SessionService = Depends(get_session_service),
):
    """Exchange a refresh token for a new access token on the same session."""
    auth_service = AuthService(db, session_service)
    new_token = auth_service.refresh_access_token(body.refresh_token)
    return Result.successful(data=new_token)


@router.post("/logout", response_model=Result[MessageResponse])
def logout(
    payload: dict = Depends(get_token_payload),
    db: Session = Depends(get_db),
    session_service: SessionService = Depends(get_session_service),
):
    """End the session the access token belongs to."""
    auth_service = AuthService(db, session_service)
    auth_service.logout(payload["sid"], payload["user_id"])
    return Result.successful(data=MessageResponse(message="Successfully logged out"))
