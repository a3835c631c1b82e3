"""Rate limiter facade.

A ``RateLimiter`` binds one policy (capacity + window) to one window store.
The store is chosen once, when the limiter is built: the shared Redis store
when both the Redis URL and token are configured, the in-process store
otherwise. The choice never changes for the limiter's lifetime.
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable

from redis.asyncio import Redis

from session_guard.adapters.rate_limit.base import AbstractWindowStore, RateLimitDecision
from session_guard.adapters.rate_limit.in_memory import InMemorySlidingWindowStore
from session_guard.adapters.rate_limit.redis_store import (
    RedisSlidingWindowStore,
    create_redis_client,
)
from session_guard.core.config import RateLimitSettings, RedisSettings
from session_guard.core.errors import RateLimitBackendError

logger = logging.getLogger(__name__)

_UNIT_MS = {
    "s": 1_000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]*)\s*$")


@dataclass(frozen=True)
class Duration:
    """Window length expressed as magnitude + single-letter unit."""

    magnitude: int
    unit: str

    @property
    def milliseconds(self) -> int:
        return self.magnitude * _UNIT_MS[self.unit]

    def __str__(self) -> str:
        return f"{self.magnitude} {self.unit}"


def parse_duration(value: str | Duration) -> Duration:
    """Parse strings like ``"15 m"``, ``"1h"`` or ``"30"`` into a Duration.

    Units are ``s``, ``m``, ``h`` and ``d``. A value without a recognized
    unit suffix is read as seconds.

    Raises:
        ValueError: If there is no leading integer or it is not positive.

    Examples:
        >>> parse_duration("15 m").milliseconds
        900000
        >>> parse_duration("30").unit
        's'
    """

    if isinstance(value, Duration):
        return value

    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")

    magnitude = int(match.group(1))
    if magnitude < 1:
        raise ValueError(f"Duration must be positive: {value!r}")

    suffix = match.group(2).lower()
    unit = suffix if suffix in _UNIT_MS else "s"
    return Duration(magnitude=magnitude, unit=unit)


def hash_identifier(identifier: str) -> str:
    """Hash an identifier for logging without exposing addresses or ids."""
    return hashlib.sha256(identifier.encode()).hexdigest()[:16]


class RateLimiter:
    """One named policy enforced against a single window store."""

    def __init__(
        self,
        store: AbstractWindowStore,
        *,
        name: str,
        requests: int,
        window: str | Duration,
        fail_open: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            store: Backend performing the sliding-window bookkeeping.
            name: Policy name, used in logs.
            requests: Capacity of the window.
            window: Window length, e.g. ``"15 m"``.
            fail_open: Admit requests when the store raises
                RateLimitBackendError instead of propagating it.
            clock: Time source (seconds) for fail-open decisions.

        Raises:
            ValueError: If requests or window are invalid.
        """
        if requests < 1:
            raise ValueError("requests must be >= 1")

        self._store = store
        self.name = name
        self.requests = requests
        self.window = parse_duration(window)
        self.fail_open = fail_open
        self._clock = clock

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"RateLimiter(name={self.name!r}, requests={self.requests}, "
            f"window={str(self.window)!r}, backend={self.backend!r})"
        )

    @property
    def backend(self) -> str:
        return self._store.backend

    @property
    def store(self) -> AbstractWindowStore:
        return self._store

    async def limit(self, identifier: str) -> RateLimitDecision:
        """Count one request for ``identifier`` and return the decision.

        Raises:
            RateLimitBackendError: If the store fails and fail_open is False.
        """
        try:
            decision = await self._store.evaluate(
                identifier, self.requests, self.window.milliseconds
            )
        except RateLimitBackendError:
            if not self.fail_open:
                raise
            logger.warning(
                "rate_limit.fail_open",
                extra={
                    "policy": self.name,
                    "backend": self.backend,
                    "identifier_hash": hash_identifier(identifier),
                },
            )
            now_ms = int(self._clock() * 1000)
            return RateLimitDecision(
                success=True,
                limit=self.requests,
                remaining=self.requests,
                reset=now_ms + self.window.milliseconds,
            )

        log = logger.info if decision.success else logger.warning
        log(
            "rate_limit.allowed" if decision.success else "rate_limit.exceeded",
            extra={
                "policy": self.name,
                "backend": self.backend,
                "identifier_hash": hash_identifier(identifier),
                "limit": decision.limit,
                "remaining": decision.remaining,
                "reset": decision.reset,
            },
        )
        return decision

    async def aclose(self) -> None:
        await self._store.aclose()


def create_window_store(
    name: str,
    *,
    redis_settings: RedisSettings,
    rate_limit_settings: RateLimitSettings,
    redis_client: Redis | None = None,
) -> AbstractWindowStore:
    """Pick the backend for one policy based on configuration presence.

    Args:
        name: Policy name, used as the Redis key namespace.
        redis_settings: Shared store connection settings.
        rate_limit_settings: Rate limiting behaviour settings.
        redis_client: Client to share when the shared store is selected;
            a dedicated client is created (and owned by the store) if omitted.
    """

    if redis_settings.configured:
        client = redis_client or create_redis_client(
            redis_settings.url or "",
            redis_settings.token,
            timeout_seconds=redis_settings.timeout_seconds,
        )
        return RedisSlidingWindowStore(
            client,
            namespace=name,
            prefix=rate_limit_settings.prefix,
            analytics=rate_limit_settings.analytics,
            owns_client=redis_client is None,
        )

    return InMemorySlidingWindowStore(
        max_identifiers=rate_limit_settings.max_identifiers,
        sweep_interval=rate_limit_settings.sweep_interval,
    )
