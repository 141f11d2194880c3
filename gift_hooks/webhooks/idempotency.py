"""At-most-once guard for gift additions, backed by Redis.

Shopify redelivers webhooks and fires carts/update many times per session,
so two deliveries for the same cart/order can both see "gift absent".
Before mutating, a flow claims (flow, entity id, target id).

Security contract:
- Key pattern: gift:claim:{flow}:{entity_id}:{target_id}, TTL 24h by default
- Claim uses SET NX EX (atomic check-and-mark)
- Claim is released when the mutation fails so redelivery can retry
- If Redis is down or stops answering, falls back to allowing (fail-open
  for availability) once the socket timeout (1s by default) expires
- No REDIS_URL configured -> guard disabled, every claim succeeds
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)

_KEY_PREFIX = "gift:claim"


class IdempotencyGuard:
    """Claims gift additions so each (flow, entity, target) runs once."""

    def __init__(
        self,
        redis_url: str = "",
        ttl_seconds: int = 86400,
        client: Any = None,
        socket_timeout: float = 1.0,
    ) -> None:
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.socket_timeout = socket_timeout
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.redis_url)

    def _get_redis(self) -> Any:
        if self._client is None:
            import redis as redis_lib

            self._client = redis_lib.from_url(
                self.redis_url,
                decode_responses=True,
                socket_timeout=self.socket_timeout,
                socket_connect_timeout=self.socket_timeout,
            )
        return self._client

    @staticmethod
    def key(flow: str, entity_id: str, target_id: str) -> str:
        return f"{_KEY_PREFIX}:{flow}:{entity_id}:{target_id}"

    def claim(self, flow: str, entity_id: str, target_id: str) -> bool:
        """Try to claim the addition.

        Returns:
            True if this caller owns the addition, False if already claimed
        """
        if not self.enabled or not entity_id:
            return True

        key = self.key(flow, entity_id, target_id)
        try:
            was_set = self._get_redis().set(key, "1", nx=True, ex=self.ttl_seconds)
        except Exception:
            logger.warning("Redis unavailable for gift dedup - allowing %s", key, exc_info=True)
            return True
        if not was_set:
            logger.info("Duplicate gift addition rejected: %s", key)
            return False
        return True

    def release(self, flow: str, entity_id: str, target_id: str) -> None:
        """Drop a claim after a failed mutation."""
        if not self.enabled or not entity_id:
            return
        key = self.key(flow, entity_id, target_id)
        try:
            self._get_redis().delete(key)
        except Exception:
            logger.warning("Failed to release gift claim: %s", key, exc_info=True)
