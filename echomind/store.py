"""
In-memory storage for a single EchoMind session.

This module provides the conversation log, the mood history and the custom
keyword mapping table. Nothing is persisted: every store lives for as long as
its session does. The conversation and mood logs are append-only and keep
insertion order, which is also chronological order.
"""

import itertools
from collections.abc import Iterable, Iterator
from datetime import datetime

from .emotions import Emotion, normalize
from .errors import ValidationError
from .models import ChatMessage, CustomMapping, MoodEntry, utcnow

DEFAULT_HISTORY_WINDOW = 6


class ConversationStore:
    """
    Ordered log of chat messages exchanged in one session.

    Messages are never removed or reordered. The only mutable field on a
    stored message is its reaction.
    """

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []
        self._index: dict[str, ChatMessage] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def get(self, message_id: str) -> ChatMessage | None:
        return self._index.get(message_id)

    def append_user_message(self, text: str) -> ChatMessage:
        """
        Append a message written by the user.

        Args:
            text: The message body

        Returns:
            The stored ChatMessage

        Raises:
            ValidationError: If the text is empty after trimming
        """
        if not text or not text.strip():
            raise ValidationError("Message text must not be empty")
        message = ChatMessage(id=self._next_id("user"), sender="user", text=text)
        return self._append(message)

    def append_ai_message(self, text: str, emotion: Emotion) -> ChatMessage:
        """Append an AI reply tagged with an already normalized emotion."""
        message = ChatMessage(
            id=self._next_id("ai"), sender="ai", text=text, emotion=emotion
        )
        return self._append(message)

    def set_reaction(self, message_id: str, reaction: Emotion | None) -> None:
        """
        Set or clear the user's reaction on a message.

        Unknown message ids are ignored.
        """
        message = self._index.get(message_id)
        if message is None:
            return
        message.reaction = reaction

    def recent_window(self, n: int = DEFAULT_HISTORY_WINDOW) -> list[ChatMessage]:
        """Return the last `n` messages, oldest first."""
        if n <= 0:
            return []
        return self._messages[-n:]

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _append(self, message: ChatMessage) -> ChatMessage:
        self._messages.append(message)
        self._index[message.id] = message
        return message


class MoodHistory:
    """Append-only sequence of mood entries, one per completed AI turn."""

    def __init__(self) -> None:
        self._entries: list[MoodEntry] = []
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[MoodEntry]:
        return iter(list(self._entries))

    def entries(self) -> list[MoodEntry]:
        return list(self._entries)

    def append(
        self, emotion: object, summary: str, timestamp: datetime | None = None
    ) -> MoodEntry:
        entry = MoodEntry(
            id=f"mood-{next(self._ids)}",
            timestamp=timestamp or utcnow(),
            emotion=normalize(emotion),
            summary=summary,
        )
        self._entries.append(entry)
        return entry


class MappingTable:
    """
    The user's keyword to emotion overrides.

    Keywords are stored trimmed and lowercased. Duplicate keywords are kept
    as separate entries; `for_classifier` collapses them so that the most
    recently added mapping for a keyword is the one the classifier sees.
    """

    def __init__(self) -> None:
        self._mappings: list[CustomMapping] = []
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._mappings)

    def __iter__(self) -> Iterator[CustomMapping]:
        return iter(list(self._mappings))

    def add(self, keyword: str, emotion: object) -> CustomMapping:
        """
        Add a mapping.

        Raises:
            ValidationError: If the keyword is empty after trimming
        """
        cleaned = (keyword or "").strip().lower()
        if not cleaned:
            raise ValidationError("Keyword must not be empty")
        mapping = CustomMapping(
            id=f"map-{next(self._ids)}", keyword=cleaned, emotion=normalize(emotion)
        )
        self._mappings.append(mapping)
        return mapping

    def remove(self, mapping_id: str) -> bool:
        """Delete a mapping by id. Returns False if it did not exist."""
        before = len(self._mappings)
        self._mappings = [m for m in self._mappings if m.id != mapping_id]
        return len(self._mappings) != before

    def for_classifier(self) -> list[CustomMapping]:
        return dedupe_mappings(self._mappings)


def dedupe_mappings(mappings: Iterable[CustomMapping]) -> list[CustomMapping]:
    """Keep only the last mapping per keyword, ordered by that last position."""
    latest: dict[str, CustomMapping] = {}
    for mapping in mappings:
        latest.pop(mapping.keyword, None)
        latest[mapping.keyword] = mapping
    return list(latest.values())
