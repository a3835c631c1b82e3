"""FastAPI dependencies exposing the per-process service objects.

``create_app`` stores the rate limiter context and the collaborator clients on
``app.state``; handlers reach them only through these functions so tests can
substitute fakes at app construction.
"""

from __future__ import annotations

from fastapi import Request

from session_guard.adapters.supabase.base import (
    AbstractIdentityProvider,
    AbstractObjectStorage,
    AbstractProfileStore,
)
from session_guard.adapters.supabase.factory import Collaborators
from session_guard.services.policies import RateLimits


def get_rate_limits(request: Request) -> RateLimits:
    return request.app.state.rate_limits


def get_collaborators(request: Request) -> Collaborators:
    return request.app.state.collaborators


def get_identity(request: Request) -> AbstractIdentityProvider:
    return get_collaborators(request).identity


def get_profile_store(request: Request) -> AbstractProfileStore:
    return get_collaborators(request).profiles


def get_object_storage(request: Request) -> AbstractObjectStorage:
    return get_collaborators(request).storage
