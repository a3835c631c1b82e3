"""Supabase adapter layer - identity, profile store and object storage."""

from session_guard.adapters.supabase.auth import SupabaseAuthClient
from session_guard.adapters.supabase.base import (
    AbstractIdentityProvider,
    AbstractObjectStorage,
    AbstractProfileStore,
    AuthSession,
    AuthUser,
    MfaEnrollment,
    MfaFactor,
)
from session_guard.adapters.supabase.factory import Collaborators, create_supabase_collaborators
from session_guard.adapters.supabase.profiles import SupabaseProfileStore
from session_guard.adapters.supabase.storage import SupabaseObjectStorage

__all__ = [
    "AbstractIdentityProvider",
    "AbstractObjectStorage",
    "AbstractProfileStore",
    "AuthSession",
    "AuthUser",
    "Collaborators",
    "MfaEnrollment",
    "MfaFactor",
    "SupabaseAuthClient",
    "SupabaseObjectStorage",
    "SupabaseProfileStore",
    "create_supabase_collaborators",
]
