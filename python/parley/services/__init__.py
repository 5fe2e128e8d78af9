"""Business logic services.

This module contains the completion pipeline: extraction, caching, context
assembly, completion and turn recording. Route handlers call the two entry
points, ``send_chat_message`` and ``process_file``.
"""

from parley.services.chat import send_chat_message
from parley.services.file_processing import process_file

__all__ = [
    "send_chat_message",
    "process_file",
]
