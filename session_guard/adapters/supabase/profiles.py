"""Profile store backed by the ``profiles`` table through PostgREST."""

from __future__ import annotations

from typing import Any

from session_guard.adapters.supabase.base import AbstractProfileStore
from session_guard.adapters.supabase.http import SupabaseHTTP

# Columns callers may change; anything else is dropped before the request
UPDATABLE_FIELDS = frozenset({"full_name", "phone", "avatar_url"})

_SINGLE_OBJECT = {"Accept": "application/vnd.pgrst.object+json"}


class SupabaseProfileStore(SupabaseHTTP, AbstractProfileStore):
    service = "profiles"

    async def get_profile(self, access_token: str, user_id: str) -> dict[str, Any]:
        response = await self._request(
            "GET",
            "/rest/v1/profiles",
            access_token=access_token,
            headers=_SINGLE_OBJECT,
            params={"id": f"eq.{user_id}", "select": "*"},
        )
        return response.json()

    async def update_profile(
        self, access_token: str, user_id: str, fields: dict[str, Any]
    ) -> dict[str, Any]:
        changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        response = await self._request(
            "PATCH",
            "/rest/v1/profiles",
            access_token=access_token,
            headers={**_SINGLE_OBJECT, "Prefer": "return=representation"},
            params={"id": f"eq.{user_id}"},
            json=changes,
        )
        return response.json()
