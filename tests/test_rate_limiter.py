"""Tests for the rate limiter facade, duration parsing and backend choice."""

from unittest.mock import MagicMock, Mock

import pytest

from session_guard.adapters.rate_limit.base import AbstractWindowStore
from session_guard.adapters.rate_limit.in_memory import InMemorySlidingWindowStore
from session_guard.adapters.rate_limit.redis_store import RedisSlidingWindowStore
from session_guard.core.config import RateLimitSettings, RedisSettings
from session_guard.core.errors import RateLimitBackendError
from session_guard.services.policies import AUTH_POLICY, POLICIES
from session_guard.services.rate_limiter import (
    Duration,
    RateLimiter,
    create_window_store,
    hash_identifier,
    parse_duration,
)


class BrokenStore(AbstractWindowStore):
    backend = "redis"

    async def evaluate(self, identifier, capacity, window_ms):
        raise RateLimitBackendError(
            code="rate_limit_backend_unavailable",
            message="Rate limit store is unavailable",
        )


@pytest.mark.parametrize(
    ("text", "expected_ms"),
    [
        ("15 m", 900_000),
        ("1h", 3_600_000),
        ("1 d", 86_400_000),
        ("60 s", 60_000),
        ("30", 30_000),
        ("10 weeks", 10_000),
    ],
)
def test_parse_duration(text: str, expected_ms: int) -> None:
    assert parse_duration(text).milliseconds == expected_ms


@pytest.mark.parametrize("text", ["", "m", "-5 m", "0 s", "1.5 h"])
def test_parse_duration_rejects_invalid(text: str) -> None:
    with pytest.raises(ValueError):
        parse_duration(text)


def test_parse_duration_passes_through_duration() -> None:
    duration = Duration(magnitude=2, unit="h")
    assert parse_duration(duration) is duration


def test_hash_identifier_is_stable_and_opaque() -> None:
    hashed = hash_identifier("203.0.113.5")
    assert hashed == hash_identifier("203.0.113.5")
    assert "203" not in hashed
    assert len(hashed) == 16


def test_limiter_rejects_non_positive_capacity() -> None:
    with pytest.raises(ValueError):
        RateLimiter(InMemorySlidingWindowStore(), name="x", requests=0, window="1 m")


@pytest.mark.asyncio
async def test_auth_policy_scenario() -> None:
    t1_ms = 1_700_000_000_000
    clock = Mock(return_value=t1_ms / 1000)
    limiter = RateLimiter(
        InMemorySlidingWindowStore(clock=clock),
        name=AUTH_POLICY.name,
        requests=AUTH_POLICY.requests,
        window=AUTH_POLICY.window,
    )

    for _ in range(5):
        assert (await limiter.limit("1.2.3.4")).success is True

    blocked = await limiter.limit("1.2.3.4")
    assert blocked.success is False
    assert blocked.reset == t1_ms + 15 * 60 * 1000

    clock.return_value = (t1_ms + 15 * 60 * 1000 + 1) / 1000
    assert (await limiter.limit("1.2.3.4")).success is True


@pytest.mark.asyncio
async def test_fail_open_admits_and_logs(caplog) -> None:
    clock = Mock(return_value=1000.0)
    limiter = RateLimiter(BrokenStore(), name="auth", requests=5, window="15 m", clock=clock)

    decision = await limiter.limit("1.2.3.4")

    assert decision.success is True
    assert decision.remaining == 5
    assert decision.reset == 1_000_000 + 900_000
    assert any(r.getMessage() == "rate_limit.fail_open" for r in caplog.records)


@pytest.mark.asyncio
async def test_fail_closed_propagates_backend_error() -> None:
    limiter = RateLimiter(BrokenStore(), name="auth", requests=5, window="15 m", fail_open=False)

    with pytest.raises(RateLimitBackendError):
        await limiter.limit("1.2.3.4")


def test_memory_store_selected_without_redis_configuration() -> None:
    for redis_settings in (
        RedisSettings(url=None, token=None),
        RedisSettings(url="rediss://cache:6379", token=None),
        RedisSettings(url=None, token="secret"),
    ):
        store = create_window_store(
            "auth",
            redis_settings=redis_settings,
            rate_limit_settings=RateLimitSettings(),
        )
        assert isinstance(store, InMemorySlidingWindowStore)


def test_redis_store_selected_with_url_and_token() -> None:
    client = MagicMock()
    store = create_window_store(
        "auth",
        redis_settings=RedisSettings(url="rediss://cache:6379", token="secret"),
        rate_limit_settings=RateLimitSettings(),
        redis_client=client,
    )

    assert isinstance(store, RedisSlidingWindowStore)
    assert store.key_for("k") == "@ratelimit:auth:k"


@pytest.mark.asyncio
async def test_backend_fixed_for_limiter_lifetime(monkeypatch) -> None:
    store = create_window_store(
        "profile",
        redis_settings=RedisSettings(url=None, token=None),
        rate_limit_settings=RateLimitSettings(),
    )
    limiter = RateLimiter(store, name="profile", requests=10, window="1 m")

    monkeypatch.setenv("REDIS_URL", "rediss://cache:6379")
    monkeypatch.setenv("REDIS_TOKEN", "secret")

    await limiter.limit("k")
    assert limiter.backend == "memory"


def test_policy_table() -> None:
    table = {p.name: (p.requests, parse_duration(p.window).milliseconds) for p in POLICIES}

    assert table == {
        "auth": (5, 900_000),
        "profile": (10, 60_000),
        "password_reset": (3, 3_600_000),
        "avatar_upload": (5, 600_000),
    }
