from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from session_guard.api.dependencies import get_rate_limits
from session_guard.services.policies import RateLimits

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(rate_limits: Annotated[RateLimits, Depends(get_rate_limits)]) -> dict:
    """Liveness probe for load balancers.

    Also reports which quota backend the limiters were built with, since a
    missing Redis configuration silently selects the per-process store.
    """

    return {"status": "ok", "rate_limit_backend": rate_limits.auth.backend}
