"""Factory for the Supabase-backed collaborators."""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from session_guard.adapters.supabase.auth import SupabaseAuthClient
from session_guard.adapters.supabase.base import (
    AbstractIdentityProvider,
    AbstractObjectStorage,
    AbstractProfileStore,
)
from session_guard.adapters.supabase.profiles import SupabaseProfileStore
from session_guard.adapters.supabase.storage import SupabaseObjectStorage
from session_guard.core.config import SupabaseSettings
from session_guard.core.errors import ConfigurationAppError


@dataclass
class Collaborators:
    """The external services the API consumes as black boxes."""

    identity: AbstractIdentityProvider
    profiles: AbstractProfileStore
    storage: AbstractObjectStorage

    async def aclose(self) -> None:
        await self.identity.aclose()
        await self.profiles.aclose()
        await self.storage.aclose()


def create_supabase_collaborators(
    supabase: SupabaseSettings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Collaborators:
    """Build identity, profile and storage clients sharing one HTTP pool.

    Args:
        supabase: Endpoint settings (url and anon key are required).
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).

    Returns:
        Collaborators: Configured clients.

    Raises:
        ConfigurationAppError: If SUPABASE_URL or SUPABASE_ANON_KEY is missing.
    """
    if not supabase.url or not supabase.anon_key:
        raise ConfigurationAppError(
            code="supabase_not_configured",
            message=(
                "Missing Supabase configuration. Set SUPABASE_URL and "
                "SUPABASE_ANON_KEY in the environment or .env file"
            ),
        )

    client = httpx.AsyncClient(
        base_url=supabase.url.rstrip("/"),
        timeout=supabase.timeout_seconds,
        transport=transport,
    )

    return Collaborators(
        identity=SupabaseAuthClient(client, anon_key=supabase.anon_key),
        profiles=SupabaseProfileStore(client, anon_key=supabase.anon_key),
        storage=SupabaseObjectStorage(
            client,
            anon_key=supabase.anon_key,
            base_url=supabase.url,
            bucket=supabase.avatars_bucket,
        ),
    )
