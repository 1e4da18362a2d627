"""
Summarization of messages dropped by compression.

A ``Summarizer`` turns the older part of a conversation into summary
text plus a short list of insights. ``ExcerptSummarizer`` is the
default: it concatenates truncated excerpts and pulls list items from
assistant replies, without calling any model.
"""

from typing import Protocol, Sequence

from convo_memory.memory_store.extraction import strip_list_marker
from convo_memory.memory_store.models import ChatMessage, MessageRole

MIN_INSIGHT_LENGTH = 10
MAX_INSIGHT_LENGTH = 200


class Summarizer(Protocol):
    """Protocol for compression summarizers."""

    def summarize(self, messages: Sequence[ChatMessage]) -> str: ...

    def extract_insights(self, messages: Sequence[ChatMessage]) -> list[str]: ...


class ExcerptSummarizer:
    """
    Build summaries from message excerpts.

    Example:
        >>> summarizer = ExcerptSummarizer(excerpt_length=100)
        >>> summarizer.summarize(older_messages)
        'User discussed: ...; ...\\nAssistant provided: ...'
    """

    def __init__(self, excerpt_length: int = 100, insight_limit: int = 10) -> None:
        self.excerpt_length = excerpt_length
        self.insight_limit = insight_limit

    def _excerpts(self, messages: Sequence[ChatMessage], role: MessageRole) -> list[str]:
        return [m.content[: self.excerpt_length] for m in messages if m.role == role]

    def summarize(self, messages: Sequence[ChatMessage]) -> str:
        parts = []

        user_excerpts = self._excerpts(messages, MessageRole.USER)
        if user_excerpts:
            parts.append(f"User discussed: {'; '.join(user_excerpts)}")

        assistant_excerpts = self._excerpts(messages, MessageRole.ASSISTANT)
        if assistant_excerpts:
            parts.append(f"Assistant provided: {'; '.join(assistant_excerpts)}")

        return "\n".join(parts)

    def extract_insights(self, messages: Sequence[ChatMessage]) -> list[str]:
        """Bulleted or numbered lines of assistant replies, length-filtered."""
        insights: list[str] = []

        for message in messages:
            if message.role != MessageRole.ASSISTANT:
                continue
            for line in message.content.splitlines():
                item = strip_list_marker(line)
                if item and MIN_INSIGHT_LENGTH < len(item) < MAX_INSIGHT_LENGTH:
                    insights.append(item)

        return insights[: self.insight_limit]
