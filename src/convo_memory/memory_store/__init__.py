"""
Memory store module for the conversation memory manager.

Provides conversation memory and context management:
- Conversation history tracking
- Heuristic context extraction
- Compression of long conversations into summaries
- Context rendering for the next model call
"""

from convo_memory.memory_store.store import MemoryStore
from convo_memory.memory_store.models import (
    ChatMessage,
    MessageRole,
    UserProfile,
    BusinessContext,
    CompressedContext,
    ConversationMemory,
    MemoryUsage,
    estimate_token_count,
)
from convo_memory.memory_store.extraction import ContextExtractor, HeuristicExtractor
from convo_memory.memory_store.summarizer import Summarizer, ExcerptSummarizer
from convo_memory.memory_store.context import render_context

__all__ = [
    "MemoryStore",
    "ChatMessage",
    "MessageRole",
    "UserProfile",
    "BusinessContext",
    "CompressedContext",
    "ConversationMemory",
    "MemoryUsage",
    "estimate_token_count",
    "ContextExtractor",
    "HeuristicExtractor",
    "Summarizer",
    "ExcerptSummarizer",
    "render_context",
]
