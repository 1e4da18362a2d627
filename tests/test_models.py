"""
Tests for conversation memory data models.

Tests profile seeding, token estimation and snapshot serialization.
"""

import json
from datetime import datetime, timezone

import pytest

from convo_memory.core.exceptions import SerializationError
from convo_memory.memory_store.models import (
    ChatMessage,
    CompressedContext,
    ConversationMemory,
    MessageRole,
    UserProfile,
    estimate_token_count,
)

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_message(content: str, role: MessageRole = MessageRole.USER, **metadata) -> ChatMessage:
    return ChatMessage(
        id=f"msg_{len(content)}",
        role=role,
        content=content,
        timestamp=T0,
        metadata=metadata,
    )


class TestUserProfile:
    """Tests for profile seeding from client user context."""

    def test_camel_case_keys(self):
        profile = UserProfile.from_user_context(
            {"name": "Amy", "companyName": "Acme", "jobTitle": "CMO", "industry": "Retail"}
        )

        assert profile.name == "Amy"
        assert profile.company == "Acme"
        assert profile.role == "CMO"
        assert profile.industry == "Retail"
        assert profile.goals == []

    def test_snake_case_keys(self):
        profile = UserProfile.from_user_context(
            {"company_name": "Acme", "job_title": "Founder"})

        assert profile.company == "Acme"
        assert profile.role == "Founder"

    def test_defaults_without_context(self):
        profile = UserProfile.from_user_context(None)

        assert profile.name == "User"
        assert profile.company == ""
        assert profile.role == ""

    def test_none_values_fall_back(self):
        profile = UserProfile.from_user_context({"name": None, "companyName": None})

        assert profile.name == "User"
        assert profile.company == ""


class TestTokenEstimate:
    """Tests for the four-characters-per-token estimate."""

    def test_empty(self):
        assert estimate_token_count([]) == 0

    def test_rounds_up(self):
        assert estimate_token_count([make_message("abcde")]) == 2

    def test_sums_all_messages(self):
        messages = [make_message("a" * 50), make_message("b" * 50)]

        assert estimate_token_count(messages) == 25


class TestSerialization:
    """Tests for JSON snapshots."""

    def build_conversation(self) -> ConversationMemory:
        context = CompressedContext(
            user_profile=UserProfile(name="Amy", company="Acme", role="CMO"),
            conversation_summary="User discussed: launch",
            key_insights=["Focus on retention"],
            research_conducted=["Research conducted: competitor"],
        )
        context.business_context.budget = "$50,000"
        context.business_context.challenges.append("Churn is a problem")
        conversation = ConversationMemory(
            conversation_id="conv_1",
            user_id="user-1",
            title="Q3 planning",
            messages=[
                make_message("Our budget is $50,000"),
                make_message("- Important: focus on retention",
                             MessageRole.ASSISTANT, researchData={"type": "market"}),
            ],
            context=context,
            created_at=T0,
            last_updated=T0,
        )
        conversation.recompute_tokens()
        return conversation

    def test_round_trip_equal(self):
        conversation = self.build_conversation()

        restored = ConversationMemory.from_json(conversation.to_json())

        assert restored == conversation
        assert restored is not conversation

    def test_timestamps_are_iso8601(self):
        data = json.loads(self.build_conversation().to_json())

        assert data["created_at"] == "2024-03-01T12:00:00+00:00"
        assert data["messages"][0]["timestamp"] == "2024-03-01T12:00:00+00:00"
        assert data["messages"][1]["role"] == "assistant"

    def test_naive_timestamps_read_as_utc(self):
        data = json.loads(self.build_conversation().to_json())
        data["created_at"] = "2024-03-01T12:00:00"

        restored = ConversationMemory.from_dict(data)

        assert restored.created_at == T0

    def test_malformed_json(self):
        with pytest.raises(SerializationError):
            ConversationMemory.from_json("{not json")

    def test_missing_fields(self):
        with pytest.raises(SerializationError):
            ConversationMemory.from_json('{"conversation_id": "conv_1"}')

    def test_non_object_json(self):
        with pytest.raises(SerializationError):
            ConversationMemory.from_json("[1, 2, 3]")

    def test_unencodable_metadata(self):
        conversation = self.build_conversation()
        conversation.messages.append(make_message("x", blob=object()))

        with pytest.raises(SerializationError):
            conversation.to_json()


class TestConversationMemory:
    """Tests for conversation helpers."""

    def test_touch_never_moves_backwards(self):
        conversation = ConversationMemory(
            conversation_id="conv_1", user_id="u", created_at=T0, last_updated=T0)

        conversation.touch(datetime(2023, 1, 1, tzinfo=timezone.utc))

        assert conversation.last_updated == T0

    def test_message_is_immutable(self):
        message = make_message("hello")

        with pytest.raises(AttributeError):
            message.content = "changed"

    def test_to_message_dict(self):
        assert make_message("hi").to_message_dict() == {"role": "user", "content": "hi"}
