"""ASGI entry point: ``uvicorn session_guard.main:app``."""

from session_guard.core.app_factory import create_app

app = create_app()
