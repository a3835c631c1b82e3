"""Object storage client for Supabase Storage buckets."""

from __future__ import annotations

import httpx

from session_guard.adapters.supabase.base import AbstractObjectStorage
from session_guard.adapters.supabase.http import SupabaseHTTP


class SupabaseObjectStorage(SupabaseHTTP, AbstractObjectStorage):
    """Uploads into a single bucket; public URLs assume a public bucket."""

    service = "storage"

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        anon_key: str,
        base_url: str,
        bucket: str,
    ) -> None:
        super().__init__(client, anon_key=anon_key)
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket

    async def put_object(
        self, access_token: str, path: str, data: bytes, content_type: str
    ) -> None:
        await self._request(
            "POST",
            f"/storage/v1/object/{self._bucket}/{path}",
            access_token=access_token,
            headers={"Content-Type": content_type, "x-upsert": "false"},
            content=data,
        )

    def get_public_url(self, path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{path}"
