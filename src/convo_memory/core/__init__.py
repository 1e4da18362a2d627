"""
Core module for the conversation memory manager.

Contains the exception hierarchy used throughout the application.
"""

from convo_memory.core.exceptions import (
    ConvoMemoryError,
    ConfigurationError,
    ConversationNotFoundError,
    StorageError,
    DatabaseError,
    SerializationError,
)

__all__ = [
    # Base
    "ConvoMemoryError",
    "ConfigurationError",
    # Conversation
    "ConversationNotFoundError",
    # Storage
    "StorageError",
    "DatabaseError",
    "SerializationError",
]
