"""
One-shot content generation: dashboard insights, wellness tools and the
mood balancer.

Unlike the classifier these functions do not invent fallback text. Every
failure surfaces as an ExternalServiceError and the caller decides what the
user sees.
"""

import logging
from collections.abc import Sequence

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from .aggregator import INSIGHT_MIN_ENTRIES, is_insight_eligible
from .errors import ExternalServiceError, ValidationError
from .gateway import GenerationClient
from .models import MoodBalancerResult, MoodEntry
from .prompts import (
    MOOD_BALANCER_SCHEMA,
    WELLNESS_PROMPTS,
    insight_prompt,
    mood_balancer_prompt,
    mood_balancer_system_prompt,
)

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "English"

SUPPORTED_LANGUAGES = (
    "English",
    "Hindi",
    "Gujarati",
    "Marathi",
    "Bengali",
    "Tamil",
    "Spanish",
    "French",
    "Japanese",
)


class ToolPreset(BaseModel):
    """A ready-made wellness tool offered in the toolkit."""

    label: str
    tool: str
    topic: str


TOOLKIT_PRESETS: tuple[ToolPreset, ...] = (
    ToolPreset(label="For Anxiety", tool="meditation", topic="reducing anxiety"),
    ToolPreset(label="For Focus", tool="meditation", topic="improving focus"),
    ToolPreset(label="For Sleep", tool="meditation", topic="preparing for sleep"),
    ToolPreset(
        label="For Confidence", tool="affirmation", topic="building self-confidence"
    ),
    ToolPreset(
        label="For Gratitude", tool="affirmation", topic="cultivating gratitude"
    ),
    ToolPreset(label="For Self-Love", tool="affirmation", topic="practicing self-love"),
)


async def generate_insight(
    client: GenerationClient, entries: Sequence[MoodEntry]
) -> str:
    """
    Summarize patterns in the mood history.

    Raises:
        ValidationError: If there are fewer than INSIGHT_MIN_ENTRIES entries;
            the service is not called in that case
        ExternalServiceError: If generation fails
    """
    if not is_insight_eligible(entries):
        raise ValidationError(
            f"At least {INSIGHT_MIN_ENTRIES} mood entries are needed for insights"
        )
    try:
        return await client.generate(insight_prompt(entries))
    except ExternalServiceError as e:
        logger.exception("Insight generation failed")
        raise ExternalServiceError("Failed to generate insights.") from e


async def generate_wellness_content(
    client: GenerationClient, tool: str, topic: str
) -> str:
    """Generate a meditation script or a list of affirmations for a topic."""
    build_prompt = WELLNESS_PROMPTS.get(tool)
    if build_prompt is None:
        raise ValidationError("Invalid wellness tool specified.")
    if not topic or not topic.strip():
        raise ValidationError("Wellness topic must not be empty")

    try:
        return await client.generate(build_prompt(topic.strip()))
    except ExternalServiceError as e:
        logger.exception("Wellness tool generation failed for %s", tool)
        raise ExternalServiceError(f"Failed to generate content for {tool}.") from e


async def generate_mood_balancer(
    client: GenerationClient, text: str, language: str = DEFAULT_LANGUAGE
) -> MoodBalancerResult:
    """Produce comfort content for free text in the requested language."""
    if not text or not text.strip():
        raise ValidationError("Mood balancer text must not be empty")
    language = (language or DEFAULT_LANGUAGE).strip() or DEFAULT_LANGUAGE

    try:
        raw = await client.generate_json(
            mood_balancer_prompt(text.strip(), language),
            system_instruction=mood_balancer_system_prompt(language),
            response_schema=MOOD_BALANCER_SCHEMA,
        )
        return MoodBalancerResult.model_validate(raw, strict=True)
    except (ExternalServiceError, SchemaError) as e:
        logger.exception("Mood balancer generation failed")
        raise ExternalServiceError("Failed to generate Mood Balancer content.") from e
