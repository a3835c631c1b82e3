"""Named endpoint policies and the per-process limiter context.

Limiters are built once at startup into a ``RateLimits`` object that lives on
the application state; route handlers receive it through a dependency instead
of reaching for module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from redis.asyncio import Redis

from session_guard.adapters.rate_limit.redis_store import create_redis_client
from session_guard.core.config import Settings
from session_guard.services.rate_limiter import RateLimiter, create_window_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Policy:
    """Immutable capacity/window pair bound to an endpoint class."""

    name: str
    requests: int
    window: str


AUTH_POLICY = Policy(name="auth", requests=5, window="15 m")
PROFILE_POLICY = Policy(name="profile", requests=10, window="1 m")
PASSWORD_RESET_POLICY = Policy(name="password_reset", requests=3, window="1 h")
AVATAR_UPLOAD_POLICY = Policy(name="avatar_upload", requests=5, window="10 m")

POLICIES: tuple[Policy, ...] = (
    AUTH_POLICY,
    PROFILE_POLICY,
    PASSWORD_RESET_POLICY,
    AVATAR_UPLOAD_POLICY,
)


@dataclass
class RateLimits:
    """One independent limiter per policy, shared by every request."""

    auth: RateLimiter
    profile: RateLimiter
    password_reset: RateLimiter
    avatar_upload: RateLimiter
    redis_client: Redis | None = None

    def get(self, name: str) -> RateLimiter:
        """Look up a limiter by policy name.

        Raises:
            KeyError: If no policy has that name.
        """
        limiter = getattr(self, name, None)
        if not isinstance(limiter, RateLimiter):
            raise KeyError(name)
        return limiter

    def limiters(self) -> list[RateLimiter]:
        return [self.auth, self.profile, self.password_reset, self.avatar_upload]

    async def aclose(self) -> None:
        for limiter in self.limiters():
            await limiter.aclose()
        if self.redis_client is not None:
            await self.redis_client.aclose()


def build_rate_limits(settings: Settings) -> RateLimits:
    """Construct every policy's limiter from the current configuration.

    The backend decision is made here, once; later configuration changes do
    not affect the returned limiters.
    """

    redis_client: Redis | None = None
    if settings.redis.configured:
        redis_client = create_redis_client(
            settings.redis.url or "",
            settings.redis.token,
            timeout_seconds=settings.redis.timeout_seconds,
        )

    limiters: dict[str, RateLimiter] = {}
    for policy in POLICIES:
        store = create_window_store(
            policy.name,
            redis_settings=settings.redis,
            rate_limit_settings=settings.rate_limit,
            redis_client=redis_client,
        )
        limiters[policy.name] = RateLimiter(
            store,
            name=policy.name,
            requests=policy.requests,
            window=policy.window,
            fail_open=settings.rate_limit.fail_open,
        )

    logger.info(
        "rate_limit.configured",
        extra={
            "backend": "redis" if redis_client is not None else "memory",
            "policies": [policy.name for policy in POLICIES],
            "fail_open": settings.rate_limit.fail_open,
        },
    )

    return RateLimits(redis_client=redis_client, **limiters)
