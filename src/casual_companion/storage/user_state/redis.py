"""
Redis user-state storage.

Keeps per-user orchestration state outside the process so several
orchestrator replicas can serve the same user.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from casual_companion.user_state import UserState

try:
    import redis
except ImportError:
    redis = None  # type: ignore

logger = logging.getLogger(__name__)


class RedisUserStateStore:
    """
    Redis implementation of the UserStateStore protocol.

    Each user's state is one JSON string under ``{key_prefix}{user_id}``.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        key_prefix: str = "companion:state:",
        ttl_seconds: Optional[int] = None,
    ):
        """
        Initialize the Redis store.

        Args:
            host: Redis host
            port: Redis port
            db: Redis database number
            key_prefix: Prefix for Redis keys
            ttl_seconds: Expire idle user state after this many seconds (None = never)
        """
        if redis is None:
            raise ImportError(
                "redis package is required for RedisUserStateStore. "
                "Install with: pip install casual-companion[redis]"
            )

        self.client = redis.Redis(host=host, port=port, db=db, decode_responses=True)
        self._key_prefix = key_prefix
        self._ttl = ttl_seconds

        try:
            self.client.ping()
            logger.info(f"RedisUserStateStore initialized (host={host}:{port})")
        except redis.ConnectionError as e:
            logger.error(f"Failed to connect to Redis: {e}")
            raise

    def _get_key(self, user_id: str) -> str:
        return f"{self._key_prefix}{user_id}"

    def load(self, user_id: str) -> Optional[UserState]:
        raw = self.client.get(self._get_key(user_id))
        if raw is None:
            return None
        try:
            return UserState.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable state for user {user_id}: {e}")
            return None

    def save(self, state: UserState) -> None:
        self.client.set(self._get_key(state.user_id), state.model_dump_json(), ex=self._ttl)
        logger.debug(f"Saved state for user {state.user_id}")

    def delete(self, user_id: str) -> bool:
        return bool(self.client.delete(self._get_key(user_id)))
