import json
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

import redis

from app.config import settings


@lru_cache
def get_redis_client() -> redis.Redis:
    """Process-wide Redis client. The connection pool inside it is thread safe."""
    return redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )


class EphemeralStore:
    """
    Thin key/value layer over Redis for short-lived state.

    Every key written here carries a TTL; nothing is kept forever. Errors from
    the Redis client are not caught: a store that cannot be reached must fail
    the request rather than pretend the key is absent.
    """

    def __init__(self, client: redis.Redis):
        self.client = client

    def set_many_unless_claimed(
        self,
        claim_key: str,
        mapping: Dict[str, str],
        ttl_seconds: int,
        holder_key: Callable[[str], str],
    ) -> bool:
        """
        Write `mapping` in one MULTI/EXEC unless `claim_key` is already held.

        `claim_key` stores the id of its holder and is held while the key
        `holder_key(id)` still exists. A claim whose holder has expired is
        treated as free and overwritten. `claim_key` is WATCHed from the
        check to the write, so of two concurrent callers only one writes.
        The written keys still expire independently afterwards.

        Returns:
            True if `mapping` was written, False if the claim is held or
            another client changed `claim_key` in the meantime
        """
        with self.client.pipeline(transaction=True) as pipe:
            try:
                pipe.watch(claim_key)
                current = pipe.get(claim_key)
                if current is not None and pipe.exists(holder_key(current)):
                    return False
                pipe.multi()
                for key, value in mapping.items():
                    pipe.set(key, value, ex=ttl_seconds)
                pipe.execute()
            except redis.WatchError:
                return False
        return True

    def get(self, key: str) -> Optional[str]:
        return self.client.get(key)

    def get_json(self, key: str) -> Optional[Dict[str, Any]]:
        raw = self.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def delete(self, *keys: str) -> int:
        """Delete keys and return how many of them existed."""
        if not keys:
            return 0
        return int(self.client.delete(*keys))
