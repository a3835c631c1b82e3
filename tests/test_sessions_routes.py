"""HTTP tests for /api/sessions."""

from __future__ import annotations

from datetime import datetime, timezone

from session_guard.api.routes.sessions import summarize_session
from session_guard.core.auth import CurrentUser
from session_guard.adapters.supabase.base import AuthUser


def test_lists_current_session(client, auth_headers):
    resp = client.get("/api/sessions", headers=auth_headers)

    assert resp.status_code == 200
    [session] = resp.json()["sessions"]
    assert session["id"] == "valid-access-tok"
    assert session["user_id"] == "user-123"
    assert session["created_at"] == "2024-01-01T00:00:00Z"


def test_summary_uses_token_prefix_and_timestamp():
    user = CurrentUser(user=AuthUser(id="u1"), access_token="abcdefghijklmnopqrstuvwxyz")
    now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

    summary = summarize_session(user, now=now)

    assert summary.id == "abcdefghijklmnop"
    assert summary.updated_at == "2024-06-01T12:00:00+00:00"


def test_revoke_signs_out(client, identity, auth_headers):
    resp = client.request(
        "DELETE",
        "/api/sessions",
        json={"sessionId": "valid-access-tok"},
        headers=auth_headers,
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "was_current_session": True}
    assert identity.signed_out == ["valid-access-token-0123456789"]


def test_revoke_without_body(client, identity, auth_headers):
    resp = client.delete("/api/sessions", headers=auth_headers)

    assert resp.status_code == 200
    assert len(identity.signed_out) == 1


def test_sessions_require_authentication(client):
    assert client.get("/api/sessions").status_code == 401
    assert client.delete("/api/sessions").status_code == 401
