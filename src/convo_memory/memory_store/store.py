"""
Conversation memory storage.

Keeps chat history for AI-assisted marketing conversations, maintains a
bounded compressed context derived from it, and persists snapshots
through an injected key-value store.
"""

import json
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from convo_memory.config import MemorySettings, Settings
from convo_memory.core.exceptions import (
    ConfigurationError,
    ConversationNotFoundError,
    SerializationError,
    StorageError,
)
from convo_memory.memory_store.context import render_context
from convo_memory.memory_store.extraction import ContextExtractor, HeuristicExtractor
from convo_memory.memory_store.models import (
    DEFAULT_TITLE,
    ChatMessage,
    CompressedContext,
    ConversationMemory,
    MemoryUsage,
    MessageRole,
    UserProfile,
    new_conversation_id,
    new_message_id,
    utc_now,
)
from convo_memory.memory_store.summarizer import ExcerptSummarizer, Summarizer
from convo_memory.storage import KeyValueStore, create_storage
from convo_memory.utils.logging import get_logger, get_logger_with_context

logger = get_logger(__name__)

CONVERSATION_KEY_PREFIX = "conversation_"
USER_INDEX_KEY_PREFIX = "user_conversations_"
SETTINGS_KEY = "memory_settings"


def conversation_key(conversation_id: str) -> str:
    return f"{CONVERSATION_KEY_PREFIX}{conversation_id}"


def user_index_key(user_id: str) -> str:
    return f"{USER_INDEX_KEY_PREFIX}{user_id}"


class MemoryStore:
    """
    Persistent storage for conversation memories.

    Owns conversation records, appends messages, estimates token cost,
    compresses old history once a threshold is crossed, and renders the
    context block for the next model call. Persistence failures are
    logged and swallowed; the resident copy stays authoritative.

    Example:
        >>> store = MemoryStore(InMemoryStore())
        >>> conversation_id = store.create_conversation(
        ...     "user-1", user_context={"name": "Amy", "companyName": "Acme"}
        ... )
        >>> store.add_message(conversation_id, "user", "Our budget is $50,000")
        >>> print(store.get_context_for_new_message(conversation_id))
    """

    def __init__(
        self,
        storage: KeyValueStore,
        settings: MemorySettings | None = None,
        extractor: ContextExtractor | None = None,
        summarizer: Summarizer | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize memory store.

        Args:
            storage: Key-value backend for snapshots
            settings: Memory settings; values persisted by
                ``update_settings`` take precedence
            extractor: Per-message context extraction strategy
            summarizer: Compression summarizer. Defaults to an
                ``ExcerptSummarizer`` following the current settings.
            clock: Source of timezone-aware "now" timestamps
        """
        self.storage = storage
        self.extractor = extractor or HeuristicExtractor()
        self._summarizer = summarizer
        self._clock = clock or utc_now
        self._lock = threading.RLock()

        self._conversations: dict[str, ConversationMemory] = {}
        self._user_index: dict[str, list[str]] = {}

        self._settings = settings.model_copy() if settings else MemorySettings()
        self._load_settings()

        logger.info("MemoryStore initialized")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        storage: KeyValueStore | None = None,
    ) -> "MemoryStore":
        """
        Create MemoryStore from settings.

        Args:
            settings: Application settings
            storage: Optional pre-configured backend

        Returns:
            Configured MemoryStore instance
        """
        if storage is None:
            storage = create_storage(settings.storage)

        return cls(storage=storage, settings=settings.memory)

    @property
    def summarizer(self) -> Summarizer:
        if self._summarizer is not None:
            return self._summarizer
        return ExcerptSummarizer(
            excerpt_length=self._settings.excerpt_length,
            insight_limit=self._settings.compression_insight_limit,
        )

    # --- Conversations ---

    def create_conversation(
        self,
        user_id: str,
        title: str | None = None,
        user_context: Mapping[str, Any] | None = None,
    ) -> str:
        """
        Create a new conversation for a user.

        Args:
            user_id: Owner of the conversation
            title: Display title
            user_context: Profile facts (``name``, ``companyName``,
                ``industry``, ``jobTitle``) seeding the context

        Returns:
            Conversation ID
        """
        now = self._clock()
        conversation = ConversationMemory(
            conversation_id=new_conversation_id(),
            user_id=user_id,
            title=title or DEFAULT_TITLE,
            context=CompressedContext(
                user_profile=UserProfile.from_user_context(user_context)),
            created_at=now,
            last_updated=now,
        )

        with self._lock:
            self._conversations[conversation.conversation_id] = conversation
            self._index_add(user_id, conversation.conversation_id)
            self._persist(conversation)

        logger.debug(
            f"Created conversation {conversation.conversation_id} for user {user_id}")
        return conversation.conversation_id

    def get_conversation(self, conversation_id: str) -> ConversationMemory | None:
        """
        Get a conversation, loading it from storage if not resident.

        Args:
            conversation_id: Conversation to retrieve

        Returns:
            ConversationMemory or None if not found
        """
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is not None:
                return conversation

            conversation = self._load_conversation(conversation_id)
            if conversation is not None:
                self._conversations[conversation_id] = conversation
            return conversation

    def get_conversation_context(self, conversation_id: str) -> CompressedContext | None:
        """Get the structured context of a conversation."""
        conversation = self.get_conversation(conversation_id)
        return conversation.context if conversation else None

    def _require(self, conversation_id: str) -> ConversationMemory:
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def add_message(
        self,
        conversation_id: str,
        role: MessageRole | str,
        content: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> ChatMessage:
        """
        Append a message and update the conversation's context.

        Compresses the conversation inline when auto-compression is on
        and the token estimate exceeds the compression threshold.

        Args:
            conversation_id: Conversation to append to
            role: "user", "assistant" or "system"
            content: Message text
            metadata: Side-channel data, e.g. ``{"researchData": {...}}``

        Returns:
            The stored message with its assigned id and timestamp

        Raises:
            ConversationNotFoundError: If the conversation does not exist
            ValueError: If ``role`` is not a known role
        """
        role = MessageRole(role)

        with self._lock:
            conversation = self._require(conversation_id)

            now = self._clock()
            message = ChatMessage(
                id=new_message_id(),
                role=role,
                content=content,
                timestamp=now,
                metadata=dict(metadata or {}),
            )

            conversation.messages.append(message)
            conversation.touch(now)
            conversation.recompute_tokens()

            self.extractor.update(
                conversation.context, message, self._settings.max_list_items)

            if (
                self._settings.auto_compress
                and conversation.token_count > self._settings.compression_threshold
            ):
                self._compress(conversation)

            self._persist(conversation)

        return message

    def compress_conversation(self, conversation_id: str) -> bool:
        """
        Fold older messages into the summary, keeping the recent window.

        Args:
            conversation_id: Conversation to compress

        Returns:
            True if messages were compressed, False if there was nothing
            beyond the recent window

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        with self._lock:
            conversation = self._require(conversation_id)
            compressed = self._compress(conversation)
            if compressed:
                self._persist(conversation)
            return compressed

    def _compress(self, conversation: ConversationMemory) -> bool:
        keep = self._settings.keep_recent_messages
        if len(conversation.messages) <= keep:
            return False

        older = conversation.messages[:-keep]
        recent = conversation.messages[-keep:]
        summarizer = self.summarizer
        context = conversation.context

        summary = summarizer.summarize(older)
        if self._settings.summary_mode == "append" and context.conversation_summary:
            summary = "\n".join(
                part for part in (context.conversation_summary, summary) if part)
        context.conversation_summary = summary

        # Insights are rebuilt from the folded messages, not merged
        context.key_insights = summarizer.extract_insights(older)[
            : self._settings.max_list_items]

        conversation.messages = list(recent)
        conversation.recompute_tokens()
        conversation.touch(self._clock())

        get_logger_with_context(
            __name__, conversation=conversation.conversation_id
        ).info(
            f"Compressed {len(older)} messages "
            f"(kept={len(recent)}, tokens={conversation.token_count})"
        )
        return True

    def get_context_for_new_message(self, conversation_id: str) -> str:
        """
        Build the context block to prepend to the next model call.

        Args:
            conversation_id: Conversation being continued

        Returns:
            Prompt text, or an empty string if the conversation is unknown
        """
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            return ""
        return render_context(conversation.context)

    def get_memory_usage(self, conversation_id: str) -> MemoryUsage:
        """
        Report token usage against the configured maximum.

        ``compression_needed`` is advisory and independent of
        auto-compression. Unknown conversations report zero usage.
        """
        max_tokens = self._settings.max_context_tokens
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            return MemoryUsage(
                token_count=0,
                max_tokens=max_tokens,
                usage_percentage=0.0,
                compression_needed=False,
            )

        usage_percentage = conversation.token_count / max_tokens * 100
        return MemoryUsage(
            token_count=conversation.token_count,
            max_tokens=max_tokens,
            usage_percentage=usage_percentage,
            compression_needed=usage_percentage > self._settings.compression_warning_percent,
        )

    def delete_conversation(self, conversation_id: str, user_id: str) -> None:
        """
        Delete a conversation, its persisted copy and its index entry.

        Deleting an unknown conversation is accepted silently.
        """
        with self._lock:
            self._conversations.pop(conversation_id, None)
            self._index_remove(user_id, conversation_id)

            try:
                self.storage.remove(conversation_key(conversation_id))
            except StorageError as e:
                logger.error(
                    f"Error removing persisted conversation {conversation_id}: {e}")

        logger.debug(f"Deleted conversation {conversation_id}")

    def get_user_conversations(
        self,
        user_id: str,
        limit: int = 50,
        include_archived: bool = True,
    ) -> list[ConversationMemory]:
        """
        Get a user's conversations, most recently updated first.

        Args:
            user_id: Owner to list
            limit: Maximum conversations to return
            include_archived: Include conversations with ``is_active=False``

        Returns:
            Up to ``limit`` conversations sorted by ``last_updated`` descending
        """
        with self._lock:
            conversation_ids = list(self._user_ids(user_id))

        conversations = []
        for conversation_id in conversation_ids:
            conversation = self.get_conversation(conversation_id)
            if conversation is None or conversation.user_id != user_id:
                continue
            if not include_archived and not conversation.is_active:
                continue
            conversations.append(conversation)

        conversations.sort(key=lambda c: c.last_updated, reverse=True)
        return conversations[:limit]

    def rename_conversation(self, conversation_id: str, title: str) -> None:
        """Change a conversation's display title."""
        with self._lock:
            conversation = self._require(conversation_id)
            conversation.title = title
            conversation.touch(self._clock())
            self._persist(conversation)

    def archive_conversation(self, conversation_id: str) -> None:
        """Mark a conversation inactive. Archived conversations are kept until purged."""
        with self._lock:
            conversation = self._require(conversation_id)
            conversation.is_active = False
            conversation.touch(self._clock())
            self._persist(conversation)

        logger.info(f"Archived conversation {conversation_id}")

    def purge_expired(self, now: datetime | None = None) -> int:
        """
        Delete conversations idle for longer than the retention period.

        Args:
            now: Reference time; defaults to the store clock

        Returns:
            Number of conversations deleted
        """
        cutoff = (now or self._clock()) - \
            timedelta(days=self._settings.retention_days)

        with self._lock:
            candidates = set(self._conversations)
            try:
                candidates.update(
                    key[len(CONVERSATION_KEY_PREFIX):]
                    for key in self.storage.keys(CONVERSATION_KEY_PREFIX)
                )
            except StorageError as e:
                logger.error(f"Error listing persisted conversations: {e}")

            count = 0
            for conversation_id in sorted(candidates):
                conversation = self.get_conversation(conversation_id)
                if conversation is None or conversation.last_updated >= cutoff:
                    continue
                self.delete_conversation(conversation_id, conversation.user_id)
                count += 1

        logger.info(f"Purged {count} expired conversations")
        return count

    # --- Settings ---

    def get_settings(self) -> MemorySettings:
        """Get a copy of the active memory settings."""
        return self._settings.model_copy()

    def update_settings(self, **changes: Any) -> MemorySettings:
        """
        Validate, apply and persist memory setting changes.

        Raises:
            ConfigurationError: If a change is unknown or invalid
        """
        try:
            updated = MemorySettings.model_validate(
                {**self._settings.model_dump(), **changes})
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid memory settings: {e}",
                details={"fields": sorted(changes)},
            ) from e

        self._settings = updated
        self._save_settings()
        return updated.model_copy()

    def _load_settings(self) -> None:
        try:
            raw = self.storage.get(SETTINGS_KEY)
            if raw:
                self._settings = MemorySettings.model_validate(
                    {**self._settings.model_dump(), **json.loads(raw)})
        except (StorageError, ValueError, TypeError) as e:
            logger.error(f"Error loading memory settings: {e}")

    def _save_settings(self) -> None:
        try:
            self.storage.set(SETTINGS_KEY, self._settings.model_dump_json())
        except StorageError as e:
            logger.error(f"Error saving memory settings: {e}")

    # --- Persistence ---

    def _persist(self, conversation: ConversationMemory) -> None:
        try:
            self.storage.set(
                conversation_key(conversation.conversation_id),
                conversation.to_json(),
            )
        except StorageError as e:
            logger.error(
                f"Error persisting conversation {conversation.conversation_id}: {e}")

    def _load_conversation(self, conversation_id: str) -> ConversationMemory | None:
        try:
            raw = self.storage.get(conversation_key(conversation_id))
        except StorageError as e:
            logger.error(f"Error loading conversation {conversation_id}: {e}")
            return None

        if raw is None:
            return None

        try:
            return ConversationMemory.from_json(raw)
        except SerializationError as e:
            logger.warning(
                f"Discarding unreadable conversation {conversation_id}: {e}")
            return None

    def _user_ids(self, user_id: str) -> list[str]:
        ids = self._user_index.get(user_id)
        if ids is not None:
            return ids

        ids = []
        try:
            raw = self.storage.get(user_index_key(user_id))
            if raw:
                loaded = json.loads(raw)
                if isinstance(loaded, list):
                    ids = [str(i) for i in loaded]
        except (StorageError, ValueError) as e:
            logger.error(f"Error loading conversation index for {user_id}: {e}")

        self._user_index[user_id] = ids
        return ids

    def _index_add(self, user_id: str, conversation_id: str) -> None:
        ids = self._user_ids(user_id)
        if conversation_id not in ids:
            ids.append(conversation_id)
            self._persist_index(user_id)

    def _index_remove(self, user_id: str, conversation_id: str) -> None:
        ids = self._user_ids(user_id)
        if conversation_id in ids:
            ids.remove(conversation_id)
            self._persist_index(user_id)

    def _persist_index(self, user_id: str) -> None:
        ids = self._user_index.get(user_id, [])
        try:
            if ids:
                self.storage.set(user_index_key(user_id), json.dumps(ids))
            else:
                self.storage.remove(user_index_key(user_id))
        except StorageError as e:
            logger.error(f"Error persisting conversation index for {user_id}: {e}")

    # --- Housekeeping ---

    def get_stats(self) -> dict:
        """Get memory store statistics."""
        try:
            persisted = len(self.storage.keys(CONVERSATION_KEY_PREFIX))
        except StorageError as e:
            logger.error(f"Error counting persisted conversations: {e}")
            persisted = 0

        with self._lock:
            resident = list(self._conversations.values())

        return {
            "resident_conversations": len(resident),
            "persisted_conversations": persisted,
            "resident_tokens": sum(c.token_count for c in resident),
            "resident_messages": sum(c.message_count for c in resident),
        }

    def close(self) -> None:
        """Close the underlying storage backend."""
        self.storage.close()

    def __repr__(self) -> str:
        return f"MemoryStore(storage={self.storage!r}, resident={len(self._conversations)})"
