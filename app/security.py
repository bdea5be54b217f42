from datetime import datetime, timedelta, timezone
from typing import Optional
import secrets
import jwt
from jwt.exceptions import PyJWTError
from passlib.context import CryptContext
from app.config import settings

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash."""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def generate_unusable_password_hash() -> str:
    """Hash of 32 random bytes nobody ever sees. Used when anonymizing accounts."""
    return get_password_hash(secrets.token_hex(32))


def create_access_token(
    user_id: int, session_id: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token bound to a server-side session.

    Args:
        user_id: Subject of the token
        session_id: Session the token belongs to; the token is only honoured
            while that session is still alive
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {
        "sub": str(user_id),
        "sid": session_id,
        "type": "access",
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode a JWT token.

    Returns:
        Decoded token payload or None if invalid, expired or not an access token
    """
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
        )
    except PyJWTError:
        return None

    if payload.get("type") != "access":
        return None
    return payload


def generate_refresh_token() -> str:
    """Opaque refresh token; its meaning lives only in the session store."""
    return secrets.token_urlsafe(48)
