"""
Tests for exception hierarchy.

Tests custom exceptions and error handling.
"""

import pytest

from convo_memory.core.exceptions import (
    ConvoMemoryError,
    ConfigurationError,
    ConversationNotFoundError,
    StorageError,
    DatabaseError,
    SerializationError,
)


class TestExceptionHierarchy:
    """Tests for exception inheritance."""

    def test_base_exception(self):
        """ConvoMemoryError should be the base for all custom exceptions."""
        exc = ConvoMemoryError("Test error")

        assert isinstance(exc, Exception)
        assert str(exc) == "Test error"

    def test_configuration_error(self):
        assert isinstance(ConfigurationError("Invalid config"), ConvoMemoryError)

    def test_not_found_error(self):
        exc = ConversationNotFoundError("conv_123")

        assert isinstance(exc, ConvoMemoryError)
        assert exc.conversation_id == "conv_123"

    def test_storage_errors(self):
        """Database and serialization errors are storage errors."""
        assert isinstance(DatabaseError("Query failed"), StorageError)
        assert isinstance(SerializationError("Bad JSON"), StorageError)
        assert isinstance(StorageError("Disk full"), ConvoMemoryError)


class TestExceptionAttributes:
    """Tests for exception details and formatting."""

    def test_details_in_str(self):
        exc = ConversationNotFoundError("conv_123")

        assert str(exc) == "Conversation not found (conversation_id='conv_123')"

    def test_storage_error_key(self):
        exc = StorageError("Failed to write key", key="conversation_abc")

        assert exc.key == "conversation_abc"
        assert exc.details == {"key": "conversation_abc"}

    def test_database_error_truncates_query(self):
        exc = DatabaseError("Query failed", query="SELECT " + "x" * 500)

        assert len(exc.details["query"]) == 203
        assert exc.details["query"].endswith("...")

    def test_repr(self):
        exc = ConvoMemoryError("boom", details={"a": 1})

        assert repr(exc) == "ConvoMemoryError('boom', details={'a': 1})"

    def test_catch_all(self):
        with pytest.raises(ConvoMemoryError):
            raise ConversationNotFoundError("conv_1")
