"""HTTP middleware: request correlation and page route protection.

``request_id_middleware``:
- Accepts an incoming X-Request-ID header or generates a UUID
- Stores it in contextvars so every log line of the request carries it
- Echoes it back along with X-Request-Duration-ms

``route_protection_middleware``:
- Anonymous requests to protected page prefixes redirect to the entry page
- Signed-in requests to the entry page or auth pages redirect to the dashboard
- API routes are never redirected; they answer 401 themselves

Usage:
    app.middleware("http")(route_protection_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response
from fastapi.responses import RedirectResponse

from session_guard.core.auth import resolve_current_user
from session_guard.core.config import settings
from session_guard.core.errors import UpstreamAppError
from session_guard.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Attach a correlation id to the request context and the response.

    Side Effects:
        - Sets request_id in contextvars (accessible via get_request_id())
        - Clears request_id from contextvars after the request completes
        - Adds the request id header and X-Request-Duration-ms to the response
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def _matches_prefix(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def is_protected_page(path: str) -> bool:
    return any(_matches_prefix(path, prefix) for prefix in settings.app.protected_prefixes)


def is_auth_page(path: str) -> bool:
    return path == settings.app.entry_path or _matches_prefix(path, settings.app.auth_pages_prefix)


async def route_protection_middleware(request: Request, call_next) -> Response:
    """Redirect page requests based on whether the caller has a session.

    Only the identity provider's session check is consulted; rate limiting
    does not apply here.
    """

    path = request.url.path
    protected = is_protected_page(path)
    auth_page = is_auth_page(path)

    if not (protected or auth_page):
        return await call_next(request)

    identity = request.app.state.collaborators.identity
    try:
        current = await resolve_current_user(request, identity)
    except UpstreamAppError as exc:
        # Treat the caller as anonymous rather than failing page loads
        logger.warning(
            "route_protection.session_check_failed",
            extra={"path": path, "error_code": exc.code},
        )
        current = None

    if current is None and protected:
        logger.info("route_protection.redirect_anonymous", extra={"path": path})
        return RedirectResponse(url=settings.app.entry_path, status_code=307)

    if current is not None and auth_page:
        logger.info("route_protection.redirect_authenticated", extra={"path": path})
        return RedirectResponse(url=settings.app.dashboard_path, status_code=307)

    return await call_next(request)
