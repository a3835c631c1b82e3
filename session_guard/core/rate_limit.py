"""Rate limiting for FastAPI routes.

This module wires the named policy limiters into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on ``enforce_rate_limit(policy)`` or call
  ``apply_rate_limit`` directly when the key needs the authenticated user.
- Throttled requests raise ``RateLimitExceededError``; the exception handler
  renders the 429 body and quota headers.
- Admitted requests echo the same quota headers on the normal response.

Keying:
- Auth, password reset and profile updates count per network address.
- Avatar uploads count per authenticated user.
"""

from __future__ import annotations

import time
from typing import Annotated, Awaitable, Callable

from fastapi import Depends, Request, Response

from session_guard.adapters.rate_limit.base import RateLimitDecision
from session_guard.api.dependencies import get_rate_limits
from session_guard.core.config import settings
from session_guard.core.errors import RateLimitExceededError
from session_guard.services.policies import RateLimits
from session_guard.services.rate_limiter import RateLimiter
from session_guard.utils.client_identifier import resolve_identifier


def rate_limit_headers(decision: RateLimitDecision, *, now_ms: int | None = None) -> dict[str, str]:
    """Build ``X-RateLimit-*`` headers, plus ``Retry-After`` when blocked."""

    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(decision.reset),
    }
    if not decision.success:
        now = now_ms if now_ms is not None else int(time.time() * 1000)
        headers["Retry-After"] = str(decision.retry_after_seconds(now))
    return headers


async def apply_rate_limit(
    limiter: RateLimiter,
    identifier: str,
    response: Response,
) -> RateLimitDecision | None:
    """Count one request and attach quota headers to ``response``.

    Returns:
        The decision, or None when rate limiting is disabled.

    Raises:
        RateLimitExceededError: When the caller is over quota.
    """

    if not settings.rate_limit.enabled:
        return None

    decision = await limiter.limit(identifier)
    if not decision.success:
        raise RateLimitExceededError(decision, policy=limiter.name)

    if settings.rate_limit.include_headers:
        response.headers.update(rate_limit_headers(decision))
    return decision


def enforce_rate_limit(
    policy: str,
) -> Callable[..., Awaitable[RateLimitDecision | None]]:
    """Dependency factory limiting a route by the caller's network address.

    Usage:
        @router.post("/login", dependencies=[Depends(enforce_rate_limit("auth"))])
    """

    async def dependency(
        request: Request,
        response: Response,
        rate_limits: Annotated[RateLimits, Depends(get_rate_limits)],
    ) -> RateLimitDecision | None:
        identifier = resolve_identifier(request.headers)
        return await apply_rate_limit(rate_limits.get(policy), identifier, response)

    dependency.__name__ = f"enforce_{policy}_rate_limit"
    return dependency
