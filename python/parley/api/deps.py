"""FastAPI dependencies for route handlers.

Shared resources created at startup live on ``app.state``; these helpers
hand them to routes so tests can override them.
"""

from fastapi import Request

from parley.config import Settings, get_settings
from parley.db.session import get_db
from parley.services.llm import LLMRouter
from parley.storage.client import StorageClientBase

__all__ = ["get_db", "get_llm_router", "get_storage", "get_app_settings"]


def get_llm_router(request: Request) -> LLMRouter:
    """Get the shared LLM router from app state.

    The router wraps the application-scoped httpx.AsyncClient created in the
    lifespan handler.
    """
    return request.app.state.llm_router


def get_storage(request: Request) -> StorageClientBase:
    """Get the storage client from app state."""
    return request.app.state.storage_client


def get_app_settings() -> Settings:
    return get_settings()
