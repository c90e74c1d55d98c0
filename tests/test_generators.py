"""
Tests for the insight, wellness tool and mood balancer generators.
"""

from datetime import datetime, timezone

import pytest
from fakes import FakeGemini

from echomind.emotions import Emotion
from echomind.errors import ExternalServiceError, ValidationError
from echomind.generators import (
    generate_insight,
    generate_mood_balancer,
    generate_wellness_content,
)
from echomind.models import MoodEntry

BALANCER_REPLY = {
    "detected_emotion": "Tristeza",
    "emotion_intensity": "moderate",
    "suggested_voice_tone": "calm",
    "short_story_or_quote": "Después de la lluvia sale el sol.",
    "activity_suggestion": "Sal a caminar diez minutos.",
    "ai_reply_text": "Estoy aquí contigo.",
    "language": "Spanish",
}


def entries(n):
    return [
        MoodEntry(
            id=f"mood-{i}",
            timestamp=datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
            emotion=Emotion.STRESS,
            summary="deadline",
        )
        for i in range(n)
    ]


class TestInsight:
    def setup_method(self):
        self.gemini = FakeGemini()
        self.client = self.gemini.client()

    async def test_not_called_below_threshold(self):
        with pytest.raises(ValidationError):
            await generate_insight(self.client, entries(2))
        assert self.gemini.requests == []

    async def test_generates_from_history(self):
        self.gemini.reply_text("Stress keeps showing up around deadlines.")

        insight = await generate_insight(self.client, entries(3))

        assert insight == "Stress keeps showing up around deadlines."
        assert "Stress (Summary: deadline)" in self.gemini.last_prompt

    async def test_failure_propagates(self):
        self.gemini.fail()

        with pytest.raises(ExternalServiceError, match="Failed to generate insights"):
            await generate_insight(self.client, entries(3))


class TestWellness:
    def setup_method(self):
        self.gemini = FakeGemini()
        self.client = self.gemini.client()

    async def test_meditation_prompt(self):
        self.gemini.reply_text("Breathe in... and out...")

        script = await generate_wellness_content(
            self.client, "meditation", "reducing anxiety"
        )

        assert script == "Breathe in... and out..."
        assert "guided meditation" in self.gemini.last_prompt
        assert "reducing anxiety" in self.gemini.last_prompt

    async def test_affirmation_prompt(self):
        self.gemini.reply_text("I am enough.")

        await generate_wellness_content(self.client, "affirmation", "self-love")

        assert "5 powerful, first-person affirmations" in self.gemini.last_prompt

    async def test_unknown_tool_is_rejected(self):
        with pytest.raises(ValidationError):
            await generate_wellness_content(self.client, "horoscope", "luck")
        assert self.gemini.requests == []

    async def test_failure_propagates(self):
        self.gemini.disconnect()

        with pytest.raises(ExternalServiceError, match="meditation"):
            await generate_wellness_content(self.client, "meditation", "sleep")


class TestMoodBalancer:
    def setup_method(self):
        self.gemini = FakeGemini()
        self.client = self.gemini.client()

    async def test_structured_result(self):
        self.gemini.reply_json(BALANCER_REPLY)

        result = await generate_mood_balancer(self.client, "Estoy triste", "Spanish")

        assert result.language == "Spanish"
        assert result.ai_reply_text == "Estoy aquí contigo."
        request = self.gemini.requests[0]
        assert "(Spanish)" in request["systemInstruction"]["parts"][0]["text"]
        assert len(request["generationConfig"]["responseSchema"]["required"]) == 7

    async def test_empty_text_is_rejected(self):
        with pytest.raises(ValidationError):
            await generate_mood_balancer(self.client, "  ", "English")

    async def test_missing_field_is_an_error(self):
        partial = dict(BALANCER_REPLY)
        del partial["activity_suggestion"]
        self.gemini.reply_json(partial)

        with pytest.raises(ExternalServiceError, match="Mood Balancer"):
            await generate_mood_balancer(self.client, "I feel low", "English")

    async def test_non_json_is_an_error(self):
        self.gemini.reply_text("not json")

        with pytest.raises(ExternalServiceError):
            await generate_mood_balancer(self.client, "I feel low", "English")
