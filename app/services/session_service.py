import json
import logging
import secrets
from typing import Optional, Tuple

import redis

from app.config import settings
from app.security import generate_refresh_token

logger = logging.getLogger(__name__)


class SessionService:
    """
    Server-side login sessions kept in Redis.

    Keys:
        session:{session_id}      -> user id
        refresh:{refresh_token}   -> {"user_id": ..., "session_id": ...}
        user_sessions:{user_id}   -> set of session ids

    An access token is only honoured while its session key exists, so
    deleting the session keys logs the user out everywhere at once.
    """

    def __init__(self, client: redis.Redis):
        self.client = client
        self.ttl = settings.REFRESH_TOKEN_EXPIRE_SECONDS

    @staticmethod
    def _session_key(session_id: str) -> str:
        return f"session:{session_id}"

    @staticmethod
    def _refresh_key(token: str) -> str:
        return f"refresh:{token}"

    @staticmethod
    def _user_sessions_key(user_id: int) -> str:
        return f"user_sessions:{user_id}"

    def create_session(self, user_id: int) -> Tuple[str, str]:
        """
        Open a new session for a user.

        Returns:
            Tuple of (session_id, refresh_token)
        """
        session_id = secrets.token_hex(16)
        refresh_token = generate_refresh_token()
        payload = json.dumps({"user_id": user_id, "session_id": session_id})

        with self.client.pipeline(transaction=True) as pipe:
            pipe.set(self._session_key(session_id), str(user_id), ex=self.ttl)
            pipe.set(self._refresh_key(refresh_token), payload, ex=self.ttl)
            pipe.sadd(self._user_sessions_key(user_id), session_id)
            pipe.expire(self._user_sessions_key(user_id), self.ttl)
            pipe.execute()

        logger.info(f"Session created for user {user_id}")
        return session_id, refresh_token

    def is_session_active(self, session_id: str, user_id: int) -> bool:
        stored = self.client.get(self._session_key(session_id))
        return stored is not None and stored == str(user_id)

    def get_session_for_refresh(self, refresh_token: str) -> Optional[Tuple[int, str]]:
        """Return (user_id, session_id) for a refresh token whose session is still alive."""
        raw = self.client.get(self._refresh_key(refresh_token))
        if raw is None:
            return None

        data = json.loads(raw)
        user_id = int(data["user_id"])
        session_id = data["session_id"]
        if not self.is_session_active(session_id, user_id):
            # Session was invalidated; the refresh token dies with it
            self.client.delete(self._refresh_key(refresh_token))
            return None
        return user_id, session_id

    def remove_session(self, session_id: str, user_id: int) -> None:
        with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(self._session_key(session_id))
            pipe.srem(self._user_sessions_key(user_id), session_id)
            pipe.execute()
        logger.info(f"Session removed for user {user_id}")

    def invalidate_all_sessions(self, user_id: int) -> int:
        """
        Kill every session of a user.

        Returns:
            Number of sessions that were still alive
        """
        session_ids = self.client.smembers(self._user_sessions_key(user_id))
        keys = [self._session_key(sid) for sid in session_ids]

        with self.client.pipeline(transaction=True) as pipe:
            if keys:
                pipe.delete(*keys)
            pipe.delete(self._user_sessions_key(user_id))
            results = pipe.execute()

        removed = int(results[0]) if keys else 0
        logger.info(f"Invalidated {removed} session(s) for user {user_id}")
        return removed
