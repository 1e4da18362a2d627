"""
Conversation memory manager for AI-assisted marketing chat.

Stores chat turns, keeps a bounded compressed context derived from the
full history, and renders a context block to prepend to the next
language model call.
"""

from convo_memory.config import Settings, load_config
from convo_memory.utils.logging import setup_logging, get_logger
from convo_memory.core.exceptions import ConvoMemoryError, ConversationNotFoundError
from convo_memory.memory_store import MemoryStore, ConversationMemory, ChatMessage
from convo_memory.storage import InMemoryStore, SQLiteStore, FileStore

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "load_config",
    "setup_logging",
    "get_logger",
    "ConvoMemoryError",
    "ConversationNotFoundError",
    "MemoryStore",
    "ConversationMemory",
    "ChatMessage",
    "InMemoryStore",
    "SQLiteStore",
    "FileStore",
]
