"""Application factory for the FastAPI app.

Centralizes app construction (clients, middleware, handlers, routers) so
tests can build isolated apps with fake collaborators and fresh limiters.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from session_guard.adapters.supabase.factory import Collaborators, create_supabase_collaborators
from session_guard.api.routes import (
    auth_router,
    health_router,
    mfa_router,
    profile_router,
    sessions_router,
)
from session_guard.core.config import settings
from session_guard.core.exception_handlers import setup_exception_handlers
from session_guard.core.logging import configure_logging
from session_guard.core.middleware import request_id_middleware, route_protection_middleware
from session_guard.core.openapi import apply_openapi_customizations
from session_guard.services.policies import RateLimits, build_rate_limits

logger = logging.getLogger(__name__)


def create_app(
    *,
    collaborators: Collaborators | None = None,
    rate_limits: RateLimits | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        collaborators: Identity, profile and storage clients. Built from
            ``SUPABASE_*`` settings when omitted.
        rate_limits: Per-policy limiters. Built from ``REDIS_*`` and
            ``RATE_LIMIT_*`` settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.

    Raises:
        ConfigurationAppError: If the identity provider is not configured.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    # Fail fast on missing configuration, before serving anything
    collaborators = collaborators or create_supabase_collaborators(settings.supabase)
    rate_limits = rate_limits or build_rate_limits(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await rate_limits.aclose()
        await collaborators.aclose()
        logger.info("app.shutdown")

    app = FastAPI(
        title="Session Guard API",
        description=(
            "Account, profile and session endpoints in front of a hosted identity "
            "provider. Abuse-prone routes are throttled by named sliding-window "
            "quotas backed by Redis, or by a per-process store when Redis is not "
            "configured."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.collaborators = collaborators
    app.state.rate_limits = rate_limits

    # Middleware; the last one registered runs first
    app.middleware("http")(route_protection_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(auth_router, prefix="/api")
    app.include_router(mfa_router, prefix="/api")
    app.include_router(profile_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
