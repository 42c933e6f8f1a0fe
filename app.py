"""
App assembly entry point.

Re-exports the FastAPI `app` from `entity_api.api.main` for ASGI servers.
"""

from entity_api.api.main import app  # noqa: F401
