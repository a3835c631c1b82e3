"""Shared sliding-window store backed by Redis.

Each identifier maps to a sorted set of request timestamps. Purging,
counting and recording run inside one Lua script so concurrent workers see
a consistent window, and the server clock is used so workers with skewed
clocks agree on "now".
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from redis.asyncio import Redis
from redis.exceptions import RedisError

from session_guard.adapters.rate_limit.base import AbstractWindowStore, RateLimitDecision
from session_guard.core.errors import RateLimitBackendError

logger = logging.getLogger(__name__)


# KEYS[1] = window key
# ARGV = capacity, window_ms, expire_seconds, member nonce
# Returns {allowed, remaining, reset_ms}
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local window_ms = tonumber(ARGV[2])
local expire_s = tonumber(ARGV[3])

local t = redis.call('TIME')
local now = tonumber(t[1]) * 1000 + math.floor(tonumber(t[2]) / 1000)

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window_ms)
local count = redis.call('ZCARD', key)

if count >= capacity then
  local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
  return {0, 0, tonumber(oldest[2]) + window_ms}
end

redis.call('ZADD', key, now, now .. ':' .. ARGV[4])
redis.call('EXPIRE', key, expire_s)
return {1, capacity - count - 1, now + window_ms}
"""

ANALYTICS_TTL_SECONDS = 7 * 24 * 3600


def window_to_seconds(window_ms: int) -> int:
    """Translate a window into whole seconds for Redis.

    Sub-second precision is dropped; anything shorter than a second becomes
    one second.
    """

    return max(1, window_ms // 1000)


class RedisSlidingWindowStore(AbstractWindowStore):
    """Sliding-window counter shared by every process pointing at one Redis.

    Keys are ``{prefix}:{namespace}:{identifier}`` so each policy keeps its own
    quota even when policies share a connection pool.
    """

    backend = "redis"

    def __init__(
        self,
        client: Redis,
        *,
        namespace: str,
        prefix: str = "@ratelimit",
        analytics: bool = True,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._namespace = namespace
        self._prefix = prefix
        self._analytics = analytics
        self._owns_client = owns_client
        self._script = client.register_script(SLIDING_WINDOW_SCRIPT)

    def key_for(self, identifier: str) -> str:
        return f"{self._prefix}:{self._namespace}:{identifier}"

    def analytics_key(self, when: datetime | None = None) -> str:
        bucket = (when or datetime.now(timezone.utc)).strftime("%Y%m%d%H")
        return f"{self._prefix}:analytics:{self._namespace}:{bucket}"

    async def evaluate(self, identifier: str, capacity: int, window_ms: int) -> RateLimitDecision:
        """Evaluate the window inside Redis.

        Raises:
            ValueError: If capacity or window_ms are not positive.
            RateLimitBackendError: If Redis cannot be reached or errors.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        window_s = window_to_seconds(window_ms)
        try:
            allowed, remaining, reset = await self._script(
                keys=[self.key_for(identifier)],
                args=[capacity, window_s * 1000, window_s, uuid.uuid4().hex],
            )
        except (RedisError, OSError) as exc:
            logger.error(
                "rate_limit.backend_error",
                extra={
                    "namespace": self._namespace,
                    "error_type": type(exc).__name__,
                },
            )
            raise RateLimitBackendError(
                code="rate_limit_backend_unavailable",
                message="Rate limit store is unavailable",
                details={"backend": self.backend},
            ) from exc

        decision = RateLimitDecision(
            success=bool(int(allowed)),
            limit=capacity,
            remaining=max(0, int(remaining)),
            reset=int(reset),
        )
        if self._analytics:
            await self._record_analytics(identifier, decision.success)
        return decision

    async def _record_analytics(self, identifier: str, success: bool) -> None:
        # The decision is already final; counters are best effort
        key = self.analytics_key()
        outcome = "success" if success else "blocked"
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                pipe.hincrby(key, f"{identifier}:{outcome}", 1)
                pipe.expire(key, ANALYTICS_TTL_SECONDS)
                await pipe.execute()
        except (RedisError, OSError) as exc:
            logger.warning(
                "rate_limit.analytics_error",
                extra={
                    "namespace": self._namespace,
                    "error_type": type(exc).__name__,
                },
            )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def create_redis_client(url: str, token: str | None, *, timeout_seconds: float = 2.0) -> Redis:
    """Build an asyncio Redis client from a URL and access token."""

    return Redis.from_url(
        url,
        password=token,
        socket_timeout=timeout_seconds,
        socket_connect_timeout=timeout_seconds,
        decode_responses=True,
    )
