"""Derive the key a caller's quota is counted under."""

from __future__ import annotations

from typing import Mapping

FORWARDED_FOR_HEADER = "x-forwarded-for"
REAL_IP_HEADER = "x-real-ip"
UNKNOWN_IDENTIFIER = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Return the caller's network address as reported by the proxy chain.

    Takes the first entry of ``X-Forwarded-For``, then ``X-Real-IP``, then
    falls back to ``"unknown"``. Address syntax is not validated.

    Args:
        headers: Request headers. Lookup is case-insensitive for Starlette
            ``Headers``; plain dicts must use lowercase names.

    Examples:
        >>> get_client_ip({"x-forwarded-for": "1.1.1.1, 10.0.0.1"})
        '1.1.1.1'
        >>> get_client_ip({"x-real-ip": "2.2.2.2"})
        '2.2.2.2'
        >>> get_client_ip({})
        'unknown'
    """

    forwarded = headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = headers.get(REAL_IP_HEADER)
    if real_ip:
        return real_ip

    return UNKNOWN_IDENTIFIER


def resolve_identifier(headers: Mapping[str, str], *, user_id: str | None = None) -> str:
    """Return the authenticated user id if known, else the network address."""

    if user_id:
        return user_id
    return get_client_ip(headers)
