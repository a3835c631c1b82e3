"""Rate limiting adapters.

Two interchangeable sliding-window stores: an in-process one for single
instance/development use and a Redis-backed one shared across workers.
"""

from session_guard.adapters.rate_limit.base import AbstractWindowStore, RateLimitDecision
from session_guard.adapters.rate_limit.in_memory import InMemorySlidingWindowStore
from session_guard.adapters.rate_limit.redis_store import (
    RedisSlidingWindowStore,
    create_redis_client,
)

__all__ = [
    "AbstractWindowStore",
    "InMemorySlidingWindowStore",
    "RateLimitDecision",
    "RedisSlidingWindowStore",
    "create_redis_client",
]
