"""Pydantic schemas for request models."""

from parley.schemas.chat import ChatRequest
from parley.schemas.files import ProcessFileRequest

__all__ = [
    "ChatRequest",
    "ProcessFileRequest",
]
