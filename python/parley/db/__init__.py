"""Database module for Parley.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from parley.db.engine import create_db_engine, get_engine
from parley.db.models import (
    Base,
    Conversation,
    FileUpload,
    LLMProvider,
    Message,
    MessageRole,
    Project,
)
from parley.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "MessageRole",
    "LLMProvider",
    # Models
    "Project",
    "Conversation",
    "Message",
    "FileUpload",
]
