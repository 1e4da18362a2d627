"""
Custom exceptions for the conversation memory manager.

Provides a hierarchy of exceptions for precise error handling across
all subsystems. All exceptions inherit from ConvoMemoryError.

Exception Hierarchy:
    ConvoMemoryError (base)
    ├── ConfigurationError
    ├── ConversationNotFoundError
    └── StorageError
        ├── DatabaseError
        └── SerializationError
"""

from typing import Any


class ConvoMemoryError(Exception):
    """
    Base exception for all conversation memory errors.

    All custom exceptions inherit from this class, allowing for
    catch-all handling when needed.

    Attributes:
        message: Human-readable error description
        details: Optional dictionary with additional context
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(
                f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details!r})"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(ConvoMemoryError):
    """
    Error in configuration loading or validation.

    Raised when:
    - Configuration file is missing or malformed
    - A storage backend name is unknown
    - Runtime setting updates fail validation
    """

    pass


# =============================================================================
# Conversation Errors
# =============================================================================


class ConversationNotFoundError(ConvoMemoryError):
    """
    Error when an operation targets an unknown conversation id.

    This is the single failure condition surfaced by the memory store
    to its callers.
    """

    def __init__(
        self,
        conversation_id: str,
        message: str = "Conversation not found",
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["conversation_id"] = conversation_id
        super().__init__(message, details)
        self.conversation_id = conversation_id


# =============================================================================
# Storage Errors
# =============================================================================


class StorageError(ConvoMemoryError):
    """
    Base error for key-value storage operations.

    Raised for general storage failures not covered by
    more specific subclasses.
    """

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if key:
            details["key"] = key
        super().__init__(message, details)
        self.key = key


class DatabaseError(StorageError):
    """
    Error in SQLite database operations.

    Raised when:
    - Database connection fails
    - Query execution fails
    """

    def __init__(
        self,
        message: str,
        query: str | None = None,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if query:
            # Truncate long queries for readability
            details["query"] = query[:200] + \
                "..." if len(query) > 200 else query
        super().__init__(message, key=key, details=details)
        self.query = query


class SerializationError(StorageError):
    """
    Error encoding or decoding a persisted snapshot.

    Raised when:
    - A snapshot contains malformed JSON
    - Required fields are missing from a snapshot
    - Message metadata cannot be encoded as JSON
    """

    pass
