"""
Tests for the emotion taxonomy.
"""

import pytest

from echomind.emotions import (
    EMOTION_COLORS,
    EMOTION_ICONS,
    EMOTIONS,
    Emotion,
    is_valid_emotion,
    normalize,
    style_for,
)


class TestTaxonomy:
    """The closed emotion set and its display metadata."""

    def test_taxonomy_has_seventeen_labels(self):
        assert len(EMOTIONS) == 17
        assert "Neutral" in EMOTIONS
        assert "Excitement" in EMOTIONS

    def test_display_metadata_is_total(self):
        for emotion in Emotion:
            assert emotion in EMOTION_COLORS
            assert emotion in EMOTION_ICONS

    @pytest.mark.parametrize("candidate", ["joy", "JOY", "Joy", "  jOy  "])
    def test_normalize_ignores_case(self, candidate):
        assert normalize(candidate) is Emotion.JOY
        assert is_valid_emotion(candidate)

    @pytest.mark.parametrize("candidate", ["Happiness", "", "joyful", None, 42])
    def test_unknown_labels_fall_back_to_neutral(self, candidate):
        assert normalize(candidate) is Emotion.NEUTRAL
        assert not is_valid_emotion(candidate)

    def test_normalize_passes_members_through(self):
        assert normalize(Emotion.DISAPPOINTMENT) is Emotion.DISAPPOINTMENT

    def test_style_for_unknown_uses_neutral_style(self):
        assert style_for("mystery") == style_for(Emotion.NEUTRAL)
        assert style_for("anger") == ("red-500", "fire")
