from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import redis

from app.database import get_db
from app.security import decode_access_token
from app.models.user import User
from app.config import settings
from app.core.ephemeral_store import EphemeralStore, get_redis_client
from app.core.exception import AuthenticationException
from app.services.session_service import SessionService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def get_session_service(client: redis.Redis = Depends(get_redis_client)) -> SessionService:
    return SessionService(client)


def get_ephemeral_store(client: redis.Redis = Depends(get_redis_client)) -> EphemeralStore:
    return EphemeralStore(client)


def get_token_payload(
    token: str = Depends(oauth2_scheme),
    session_service: SessionService = Depends(get_session_service),
) -> dict:
    """
    Decoded access token whose server-side session is still alive.

    A valid signature is not enough: logging out, changing the password or
    deleting the account kills the session and with it every token issued
    for it.
    """
    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationException("Could not validate credentials")

    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        raise AuthenticationException("Invalid token format")

    session_id = payload.get("sid")
    if not session_id or not session_service.is_session_active(session_id, user_id):
        raise AuthenticationException("Session has expired or was revoked")

    payload["user_id"] = user_id
    return payload


def get_current_user(
    payload: dict = Depends(get_token_payload), db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get current authenticated user.

    Example:
        @router.get("/protected")
        def protected_route(current_user: User = Depends(get_current_user)):
            return {"user_id": current_user.id}
    """
    user = db.get(User, payload["user_id"])
    if user is None or user.is_deleted:
        raise AuthenticationException("Could not validate credentials")

    if not user.is_active:
        raise AuthenticationException("Account is deactivated")

    return user
