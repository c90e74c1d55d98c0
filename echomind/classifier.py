"""
Emotion classification for chat turns.

The classifier asks the generation service for an empathetic reply, the
dominant emotion of the user's message and a short summary. It never raises:
when the service fails or answers with something unusable, a fixed fallback
result is returned instead, so the chat always shows a reply and the mood
history always receives a valid entry.
"""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as SchemaError

from .emotions import Emotion, normalize
from .errors import ExternalServiceError
from .gateway import GenerationClient
from .models import ChatMessage, ClassificationResult, CustomMapping
from .prompts import (
    CLASSIFICATION_SCHEMA,
    CLASSIFICATION_TEMPERATURE,
    SYSTEM_PROMPT,
    classification_prompt,
)

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I'm having a little trouble understanding right now. "
    "Could you perhaps rephrase that?"
)
FALLBACK_SUMMARY = "API Error"
FALLBACK_EMOTION = Emotion.ANXIETY


def fallback_result() -> ClassificationResult:
    """The degraded result used whenever classification fails."""
    return ClassificationResult(
        reply=FALLBACK_REPLY, emotion=FALLBACK_EMOTION, summary=FALLBACK_SUMMARY
    )


class _ClassifierReply(BaseModel):
    """Shape the generation service must answer with."""

    model_config = ConfigDict(extra="forbid", strict=True)

    emotion: str
    reply: str
    summary: str

    @field_validator("reply", "summary")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class Classifier:
    """Classifies user utterances through a GenerationClient."""

    def __init__(self, client: GenerationClient) -> None:
        self._client = client

    async def classify(
        self,
        utterance: str,
        history: Sequence[ChatMessage],
        overrides: Sequence[CustomMapping] = (),
    ) -> ClassificationResult:
        """
        Classify one user utterance.

        Args:
            utterance: The new user message
            history: Recent messages for context, oldest first
            overrides: The user's keyword to emotion hints

        Returns:
            A ClassificationResult whose emotion is always a taxonomy member
        """
        prompt = classification_prompt(utterance, history, overrides)
        try:
            raw = await self._client.generate_json(
                prompt,
                system_instruction=SYSTEM_PROMPT,
                response_schema=CLASSIFICATION_SCHEMA,
                temperature=CLASSIFICATION_TEMPERATURE,
            )
            parsed = _ClassifierReply.model_validate(raw)
        except ExternalServiceError as e:
            logger.warning("Classification call failed: %s", e)
            return fallback_result()
        except SchemaError as e:
            logger.warning(
                "Classification response violated schema: %s", e.error_count()
            )
            return fallback_result()

        emotion = normalize(parsed.emotion)
        if emotion.value.lower() != parsed.emotion.strip().lower():
            logger.info("Unknown emotion %r from model, using Neutral", parsed.emotion)

        return ClassificationResult(
            reply=parsed.reply.strip(),
            emotion=emotion,
            summary=parsed.summary.strip(),
        )
