"""Shared HTTP plumbing for the Supabase REST clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from session_guard.core.errors import (
    AuthenticationAppError,
    UpstreamAppError,
    ValidationAppError,
)

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(payload, dict):
        for key in ("msg", "message", "error_description", "error"):
            if payload.get(key):
                return str(payload[key])
    return response.reason_phrase


class SupabaseHTTP:
    """Base for clients talking to one Supabase service.

    Subclasses call ``_request`` which attaches the project API key and the
    caller's bearer token and translates failures into application errors.
    """

    service = "supabase"

    def __init__(self, client: httpx.AsyncClient, *, anon_key: str) -> None:
        self._client = client
        self._anon_key = anon_key

    def _headers(self, access_token: str | None, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {access_token or self._anon_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: str | None = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and map non-2xx responses to AppError subclasses.

        401/403 become AuthenticationAppError, other 4xx ValidationAppError,
        5xx and transport failures UpstreamAppError.
        """

        try:
            response = await self._client.request(
                method, path, headers=self._headers(access_token, headers), **kwargs
            )
        except httpx.HTTPError as exc:
            logger.error(
                "upstream.transport_error",
                extra={"service": self.service, "path": path, "error_type": type(exc).__name__},
            )
            raise UpstreamAppError(
                code=f"{self.service}_unavailable",
                message=f"{self.service} service is unavailable",
                details={"http_status": 502},
            ) from exc

        if response.is_success:
            return response

        message = _error_message(response)
        logger.warning(
            "upstream.error_response",
            extra={"service": self.service, "path": path, "status_code": response.status_code},
        )

        if response.status_code in (401, 403):
            raise AuthenticationAppError(code=f"{self.service}_unauthorized", message=message)
        if 400 <= response.status_code < 500:
            raise ValidationAppError(code=f"{self.service}_rejected", message=message)
        raise UpstreamAppError(
            code=f"{self.service}_error",
            message=f"{self.service} service error",
            details={"http_status": response.status_code},
        )

    async def aclose(self) -> None:
        await self._client.aclose()
