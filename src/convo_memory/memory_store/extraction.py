"""
Context extraction from individual chat messages.

The store hands every appended message to a ``ContextExtractor``, which
updates the conversation's ``CompressedContext`` in place. The default
``HeuristicExtractor`` uses keyword and pattern matching; an NLP- or
LLM-backed extractor can be dropped in without touching the store.
"""

import re
from typing import Mapping, Protocol, Sequence

from convo_memory.memory_store.models import ChatMessage, CompressedContext, MessageRole

# Bullet ("-", "•", "*") or number ("1.", "2)") at the start of a line
LIST_MARKER_PATTERN = re.compile(r"^\s*(?:[-•*]|\d+[.)])\s+")

CURRENCY_PATTERN = re.compile(
    r"[$€£]\s?\d[\d,]*(?:\.\d+)?(?:\s?(?:k|m|bn|million|thousand)\b)?",
    re.IGNORECASE,
)
BUDGET_PHRASE_PATTERN = re.compile(
    r"budget\b[^.!?\n\d]{0,40}(\d[\d,]*(?:\.\d+)?(?:\s?(?:k|m|million|thousand|dollars|usd|eur)\b)?)",
    re.IGNORECASE,
)
SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")

TIMEFRAME_KEYWORDS = ("month", "quarter", "year", "week", "asap", "urgent")
CHALLENGE_KEYWORDS = ("problem", "challenge", "issue", "difficult", "struggle")
INSIGHT_KEYWORDS = ("insight", "key point", "important", "strategy")
ACTION_KEYWORDS = ("next step", "action", "recommend", "should")

RESEARCH_DATA_KEY = "researchData"


def append_bounded(items: list[str], value: str, limit: int) -> None:
    """Append ``value`` and evict the oldest entries beyond ``limit``."""
    items.append(value)
    overflow = len(items) - limit
    if overflow > 0:
        del items[:overflow]


def append_unique(items: list[str], value: str, limit: int) -> bool:
    """Append unless an identical string is already present."""
    if not value or value in items:
        return False
    append_bounded(items, value, limit)
    return True


def strip_list_marker(line: str) -> str | None:
    """Return the text of a bulleted or numbered line, or None."""
    match = LIST_MARKER_PATTERN.match(line)
    if not match:
        return None
    return line[match.end():].strip()


def extract_list_items(text: str, keywords: Sequence[str]) -> list[str]:
    """Collect marked list lines that mention any of ``keywords``."""
    items = []
    for line in text.splitlines():
        item = strip_list_marker(line)
        if not item:
            continue
        lowered = item.lower()
        if any(keyword in lowered for keyword in keywords):
            items.append(item)
    return items


def find_budget(text: str) -> str | None:
    match = CURRENCY_PATTERN.search(text)
    if match:
        return match.group(0).rstrip(",.").strip()

    match = BUDGET_PHRASE_PATTERN.search(text)
    if match:
        return match.group(1).rstrip(",.").strip()

    return None


def find_timeframe(text: str) -> str | None:
    """Return the last keyword of ``TIMEFRAME_KEYWORDS`` found in ``text``."""
    lowered = text.lower()
    found = None
    for keyword in TIMEFRAME_KEYWORDS:
        if keyword in lowered:
            found = keyword
    return found


def find_sentence_containing(text: str, keyword: str) -> str | None:
    keyword = keyword.lower()
    for sentence in SENTENCE_SPLIT_PATTERN.split(text):
        if keyword in sentence.lower():
            return sentence.strip() or None
    return None


class ContextExtractor(Protocol):
    """Protocol for strategies that fold one message into a context."""

    def update(
        self,
        context: CompressedContext,
        message: ChatMessage,
        max_items: int,
    ) -> None: ...


class HeuristicExtractor:
    """
    Keyword and pattern based context extraction.

    User messages feed the business context (budget, timeframe,
    challenges). Assistant messages feed key insights and next actions
    from their bulleted lines. Research metadata is logged for any role.
    """

    def update(
        self,
        context: CompressedContext,
        message: ChatMessage,
        max_items: int,
    ) -> None:
        if message.role == MessageRole.USER:
            self._update_business_context(context, message.content, max_items)
        elif message.role == MessageRole.ASSISTANT:
            self._update_insights(context, message.content, max_items)

        research = message.metadata.get(RESEARCH_DATA_KEY)
        if research:
            kind = None
            if isinstance(research, Mapping):
                kind = research.get("type")
            append_bounded(
                context.research_conducted,
                f"Research conducted: {kind or 'General research'}",
                max_items,
            )

    def _update_business_context(
        self,
        context: CompressedContext,
        content: str,
        max_items: int,
    ) -> None:
        business = context.business_context

        budget = find_budget(content)
        if budget:
            business.budget = budget

        timeframe = find_timeframe(content)
        if timeframe:
            business.timeframe = timeframe

        lowered = content.lower()
        for keyword in CHALLENGE_KEYWORDS:
            if keyword not in lowered:
                continue
            sentence = find_sentence_containing(content, keyword)
            if sentence:
                append_unique(business.challenges, sentence, max_items)

    def _update_insights(
        self,
        context: CompressedContext,
        content: str,
        max_items: int,
    ) -> None:
        for insight in extract_list_items(content, INSIGHT_KEYWORDS):
            append_unique(context.key_insights, insight, max_items)

        for action in extract_list_items(content, ACTION_KEYWORDS):
            append_unique(context.next_actions, action, max_items)
