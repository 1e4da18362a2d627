"""
Utilities module for the conversation memory manager.

Provides logging setup and helpers.
"""

from convo_memory.utils.logging import (
    setup_logging,
    get_logger,
    get_logger_with_context,
    reset_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_logger_with_context",
    "reset_logging",
]
