"""
Conversation memory data models.

Plain dataclasses for chat messages, the compressed context carried
between turns, and the conversation record that owns both. Snapshots
are JSON with ISO-8601 timestamps.
"""

import json
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping
from uuid import uuid4

from convo_memory.core.exceptions import SerializationError

CHARS_PER_TOKEN = 4

DEFAULT_TITLE = "Marketing Strategy Session"


class MessageRole(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def new_conversation_id() -> str:
    return f"conv_{uuid4().hex}"


def new_message_id() -> str:
    return f"msg_{uuid4().hex}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def estimate_token_count(messages: Iterable["ChatMessage"]) -> int:
    """Estimate tokens as one per four characters of message content."""
    total_chars = sum(len(message.content) for message in messages)
    return math.ceil(total_chars / CHARS_PER_TOKEN)


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ChatMessage:
    """
    A single chat turn.

    Messages are immutable once appended to a conversation. ``metadata``
    carries side-channel data such as ``{"researchData": {...}}``.
    """

    id: str
    role: MessageRole
    content: str
    timestamp: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessage":
        return cls(
            id=data["id"],
            role=MessageRole(data["role"]),
            content=data["content"],
            timestamp=_parse_timestamp(data["timestamp"]),
            metadata=dict(data.get("metadata") or {}),
        )

    def to_message_dict(self) -> dict:
        """Convert to LLM message format."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class UserProfile:
    """Who the conversation is with. Seeded once at creation."""

    name: str = "User"
    company: str = ""
    industry: str = ""
    role: str = ""
    goals: list[str] = field(default_factory=list)

    @classmethod
    def from_user_context(cls, user_context: Mapping[str, Any] | None) -> "UserProfile":
        """
        Build a profile from a loosely shaped user context.

        Accepts the keys sent by the web client (``companyName``,
        ``jobTitle``) as well as their snake_case forms.
        """
        ctx = user_context or {}

        def pick(*keys: str) -> str:
            for key in keys:
                value = ctx.get(key)
                if value:
                    return str(value)
            return ""

        goals = ctx.get("goals") or []
        return cls(
            name=pick("name") or "User",
            company=pick("companyName", "company_name", "company"),
            industry=pick("industry"),
            role=pick("jobTitle", "job_title", "role"),
            goals=[str(goal) for goal in goals] if isinstance(goals, list) else [],
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "company": self.company,
            "industry": self.industry,
            "role": self.role,
            "goals": list(self.goals),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UserProfile":
        return cls(
            name=data.get("name", "User"),
            company=data.get("company", ""),
            industry=data.get("industry", ""),
            role=data.get("role", ""),
            goals=list(data.get("goals", [])),
        )


@dataclass
class BusinessContext:
    """Facts about the user's business picked up from their messages."""

    target_customer: str = ""
    challenges: list[str] = field(default_factory=list)
    budget: str = ""
    timeframe: str = ""

    def to_dict(self) -> dict:
        return {
            "target_customer": self.target_customer,
            "challenges": list(self.challenges),
            "budget": self.budget,
            "timeframe": self.timeframe,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BusinessContext":
        return cls(
            target_customer=data.get("target_customer", ""),
            challenges=list(data.get("challenges", [])),
            budget=data.get("budget", ""),
            timeframe=data.get("timeframe", ""),
        )


@dataclass
class CompressedContext:
    """
    Structured state carried forward between chat turns.

    Owned by exactly one conversation. The list fields are append-only
    between compressions and bounded by the store's ``max_list_items``.
    """

    user_profile: UserProfile = field(default_factory=UserProfile)
    business_context: BusinessContext = field(default_factory=BusinessContext)
    conversation_summary: str = ""
    key_insights: list[str] = field(default_factory=list)
    next_actions: list[str] = field(default_factory=list)
    research_conducted: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "user_profile": self.user_profile.to_dict(),
            "business_context": self.business_context.to_dict(),
            "conversation_summary": self.conversation_summary,
            "key_insights": list(self.key_insights),
            "next_actions": list(self.next_actions),
            "research_conducted": list(self.research_conducted),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompressedContext":
        return cls(
            user_profile=UserProfile.from_dict(data.get("user_profile", {})),
            business_context=BusinessContext.from_dict(
                data.get("business_context", {})),
            conversation_summary=data.get("conversation_summary", ""),
            key_insights=list(data.get("key_insights", [])),
            next_actions=list(data.get("next_actions", [])),
            research_conducted=list(data.get("research_conducted", [])),
        )


@dataclass
class ConversationMemory:
    """
    Memory for a single chat session.

    ``token_count`` is derived from ``messages`` and recomputed by the
    store after every append and every compression.
    """

    conversation_id: str
    user_id: str
    title: str = DEFAULT_TITLE
    messages: list[ChatMessage] = field(default_factory=list)
    context: CompressedContext = field(default_factory=CompressedContext)
    created_at: datetime = field(default_factory=utc_now)
    last_updated: datetime = field(default_factory=utc_now)
    token_count: int = 0
    is_active: bool = True

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def is_empty(self) -> bool:
        """Check if the conversation has no messages."""
        return not self.messages

    def recompute_tokens(self) -> int:
        self.token_count = estimate_token_count(self.messages)
        return self.token_count

    def touch(self, now: datetime) -> None:
        """Bump ``last_updated`` without ever moving it backwards."""
        if now > self.last_updated:
            self.last_updated = now

    def to_dict(self) -> dict:
        return {
            "conversation_id": self.conversation_id,
            "user_id": self.user_id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
            "context": self.context.to_dict(),
            "created_at": self.created_at.isoformat(),
            "last_updated": self.last_updated.isoformat(),
            "token_count": self.token_count,
            "is_active": self.is_active,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConversationMemory":
        return cls(
            conversation_id=data["conversation_id"],
            user_id=data["user_id"],
            title=data.get("title", DEFAULT_TITLE),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
            context=CompressedContext.from_dict(data.get("context", {})),
            created_at=_parse_timestamp(data["created_at"]),
            last_updated=_parse_timestamp(data["last_updated"]),
            token_count=data.get("token_count", 0),
            is_active=data.get("is_active", True),
        )

    def to_json(self) -> str:
        """
        Serialize to a JSON snapshot.

        Raises:
            SerializationError: If message metadata is not JSON encodable
        """
        try:
            return json.dumps(self.to_dict())
        except (TypeError, ValueError) as e:
            raise SerializationError(
                f"Conversation is not JSON serializable: {e}",
                details={"conversation_id": self.conversation_id},
            ) from e

    @classmethod
    def from_json(cls, raw: str) -> "ConversationMemory":
        """
        Rebuild a conversation from a JSON snapshot.

        Raises:
            SerializationError: If the snapshot is malformed
        """
        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            return cls.from_dict(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise SerializationError(f"Malformed conversation snapshot: {e}") from e


@dataclass(frozen=True)
class MemoryUsage:
    """Advisory token usage report for one conversation."""

    token_count: int
    max_tokens: int
    usage_percentage: float
    compression_needed: bool

    def to_dict(self) -> dict:
        return {
            "token_count": self.token_count,
            "max_tokens": self.max_tokens,
            "usage_percentage": self.usage_percentage,
            "compression_needed": self.compression_needed,
        }
