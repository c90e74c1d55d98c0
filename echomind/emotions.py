"""
Emotion taxonomy for the EchoMind service.

This module defines the closed set of emotion labels the companion can attach
to a conversation turn, together with the display metadata (color and icon
tokens) used by the dashboard and chat views. External text never enters the
data model directly: it always goes through `normalize` first.
"""

from enum import Enum


class Emotion(str, Enum):
    """A label from the fixed emotion taxonomy."""

    JOY = "Joy"
    SADNESS = "Sadness"
    ANGER = "Anger"
    FEAR = "Fear"
    ANXIETY = "Anxiety"
    OPTIMISM = "Optimism"
    CALM = "Calm"
    STRESS = "Stress"
    NEUTRAL = "Neutral"
    AMUSEMENT = "Amusement"
    GRATITUDE = "Gratitude"
    LOVE = "Love"
    SURPRISE = "Surprise"
    CONFUSION = "Confusion"
    CURIOSITY = "Curiosity"
    DISAPPOINTMENT = "Disappointment"
    EXCITEMENT = "Excitement"


EMOTIONS: list[str] = [emotion.value for emotion in Emotion]

_BY_LOWER_NAME = {emotion.value.lower(): emotion for emotion in Emotion}

EMOTION_COLORS: dict[Emotion, str] = {
    Emotion.JOY: "yellow-400",
    Emotion.SADNESS: "blue-400",
    Emotion.ANGER: "red-500",
    Emotion.FEAR: "purple-400",
    Emotion.ANXIETY: "orange-400",
    Emotion.OPTIMISM: "green-400",
    Emotion.CALM: "sky-400",
    Emotion.STRESS: "rose-500",
    Emotion.NEUTRAL: "slate-400",
    Emotion.AMUSEMENT: "lime-400",
    Emotion.GRATITUDE: "pink-400",
    Emotion.LOVE: "red-400",
    Emotion.SURPRISE: "cyan-400",
    Emotion.CONFUSION: "gray-400",
    Emotion.CURIOSITY: "indigo-400",
    Emotion.DISAPPOINTMENT: "sky-600",
    Emotion.EXCITEMENT: "amber-400",
}

EMOTION_ICONS: dict[Emotion, str] = {
    Emotion.JOY: "face-smile",
    Emotion.SADNESS: "face-frown",
    Emotion.ANGER: "fire",
    Emotion.FEAR: "hand-raised",
    Emotion.ANXIETY: "bolt",
    Emotion.OPTIMISM: "sparkles",
    Emotion.CALM: "moon",
    Emotion.STRESS: "sun",
    Emotion.NEUTRAL: "chat-bubble-oval-left",
    Emotion.AMUSEMENT: "face-smile",
    Emotion.GRATITUDE: "gift",
    Emotion.LOVE: "heart",
    Emotion.SURPRISE: "sparkles",
    Emotion.CONFUSION: "question-mark-circle",
    Emotion.CURIOSITY: "light-bulb",
    Emotion.DISAPPOINTMENT: "face-frown",
    Emotion.EXCITEMENT: "star",
}

# Reactions a user can leave on an AI message.
REACTION_OPTIONS: tuple[Emotion, ...] = (
    Emotion.LOVE,
    Emotion.JOY,
    Emotion.SURPRISE,
    Emotion.GRATITUDE,
    Emotion.AMUSEMENT,
)


def _check_total(name: str, mapping: dict[Emotion, str]) -> None:
    missing = [emotion.value for emotion in Emotion if emotion not in mapping]
    if missing:
        raise ImportError(f"{name} is missing entries for: {', '.join(missing)}")


_check_total("EMOTION_COLORS", EMOTION_COLORS)
_check_total("EMOTION_ICONS", EMOTION_ICONS)


def is_valid_emotion(candidate: object) -> bool:
    """Return True if `candidate` names a taxonomy member, ignoring case."""
    if isinstance(candidate, Emotion):
        return True
    if not isinstance(candidate, str):
        return False
    return candidate.strip().lower() in _BY_LOWER_NAME


def normalize(candidate: object) -> Emotion:
    """
    Map a candidate label onto the taxonomy.

    Args:
        candidate: Any value, usually a string produced by the language model

    Returns:
        The matching Emotion, or Emotion.NEUTRAL when nothing matches
    """
    if isinstance(candidate, Emotion):
        return candidate
    if not isinstance(candidate, str):
        return Emotion.NEUTRAL
    return _BY_LOWER_NAME.get(candidate.strip().lower(), Emotion.NEUTRAL)


def style_for(candidate: object) -> tuple[str, str]:
    """Return the (color, icon) display tokens for a possibly unknown label."""
    emotion = normalize(candidate)
    return EMOTION_COLORS[emotion], EMOTION_ICONS[emotion]
