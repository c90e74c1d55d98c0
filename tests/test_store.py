"""
Tests for the in-memory session stores.

These tests verify the conversation log, the mood history and the custom
mapping table, including their ordering and validation rules.
"""

import pytest

from echomind.emotions import Emotion
from echomind.errors import ValidationError
from echomind.store import ConversationStore, MappingTable, MoodHistory


class TestConversationStore:
    """Test suite for ConversationStore functionality."""

    def setup_method(self):
        """Set up a fresh store for each test."""
        self.store = ConversationStore()

    def test_initial_state(self):
        """A new store is empty."""
        assert len(self.store) == 0
        assert self.store.recent_window(6) == []

    def test_iteration_follows_append_order(self):
        first = self.store.append_user_message("hello")
        second = self.store.append_ai_message("hi there", Emotion.CALM)
        third = self.store.append_user_message("long day")

        assert [m.id for m in self.store] == [first.id, second.id, third.id]
        assert [m.sender for m in self.store] == ["user", "ai", "user"]

    def test_ids_are_unique(self):
        ids = {self.store.append_user_message(f"message {i}").id for i in range(20)}
        ids |= {self.store.append_ai_message("reply", Emotion.JOY).id for _ in range(5)}
        assert len(ids) == 25

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_user_message_is_rejected(self, text):
        with pytest.raises(ValidationError):
            self.store.append_user_message(text)
        assert len(self.store) == 0

    def test_only_ai_messages_carry_emotion(self):
        user = self.store.append_user_message("hello")
        ai = self.store.append_ai_message("hi", Emotion.OPTIMISM)
        assert user.emotion is None
        assert ai.emotion is Emotion.OPTIMISM
        assert user.timestamp.tzinfo is not None

    @pytest.mark.parametrize("n", [0, 1, 3, 6, 10])
    def test_recent_window_returns_last_n(self, n):
        messages = [self.store.append_user_message(f"m{i}") for i in range(6)]

        window = self.store.recent_window(n)

        assert window == messages[len(messages) - min(n, len(messages)) :]

    def test_set_and_clear_reaction(self):
        ai = self.store.append_ai_message("hi", Emotion.CALM)

        self.store.set_reaction(ai.id, Emotion.LOVE)
        assert self.store.get(ai.id).reaction is Emotion.LOVE

        self.store.set_reaction(ai.id, Emotion.LOVE)
        assert self.store.get(ai.id).reaction is Emotion.LOVE

        self.store.set_reaction(ai.id, None)
        assert self.store.get(ai.id).reaction is None

    def test_reaction_on_unknown_message_is_ignored(self):
        ai = self.store.append_ai_message("hi", Emotion.CALM)
        before = [m.model_dump() for m in self.store]

        self.store.set_reaction("does-not-exist", Emotion.JOY)

        assert [m.model_dump() for m in self.store] == before
        assert ai.reaction is None


class TestMoodHistory:
    """Test suite for MoodHistory."""

    def setup_method(self):
        self.history = MoodHistory()

    def test_entries_are_appended_in_order(self):
        first = self.history.append(Emotion.JOY, "good news")
        second = self.history.append(Emotion.STRESS, "deadline")

        assert self.history.entries() == [first, second]
        assert first.id != second.id

    def test_raw_labels_are_normalized(self):
        entry = self.history.append("sadness", "rainy day")
        unknown = self.history.append("melancholy", "rainy day")

        assert entry.emotion is Emotion.SADNESS
        assert unknown.emotion is Emotion.NEUTRAL

    def test_entries_are_immutable(self):
        entry = self.history.append(Emotion.JOY, "good news")
        with pytest.raises(Exception):
            entry.emotion = Emotion.ANGER


class TestMappingTable:
    """Test suite for the custom keyword mapping table."""

    def setup_method(self):
        self.table = MappingTable()

    def test_keyword_is_trimmed_and_lowercased(self):
        mapping = self.table.add("  Productive  ", Emotion.JOY)
        assert mapping.keyword == "productive"
        assert mapping.emotion is Emotion.JOY

    @pytest.mark.parametrize("keyword", ["", "    "])
    def test_empty_keyword_is_rejected(self, keyword):
        with pytest.raises(ValidationError):
            self.table.add(keyword, Emotion.JOY)
        assert len(self.table) == 0

    def test_remove(self):
        mapping = self.table.add("gym", Emotion.EXCITEMENT)
        assert self.table.remove(mapping.id)
        assert not self.table.remove(mapping.id)
        assert list(self.table) == []

    def test_duplicates_are_kept_but_classifier_sees_latest(self):
        self.table.add("work", Emotion.STRESS)
        self.table.add("family", Emotion.LOVE)
        latest = self.table.add("Work", Emotion.CALM)

        assert len(self.table) == 3
        hints = self.table.for_classifier()
        assert [m.keyword for m in hints] == ["family", "work"]
        assert hints[-1] == latest
