"""
Shared data models for the EchoMind service.

This module defines the core domain models used across multiple layers
of the application (session state, generation gateway, API, CLI).
"""

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .emotions import Emotion

Sender = Literal["user", "ai"]
View = Literal["chat", "dashboard", "toolkit"]
WellnessTool = Literal["meditation", "affirmation"]


def utcnow() -> datetime:
    """Timezone-aware current time used for every created record."""
    return datetime.now(timezone.utc)


class ChatMessage(BaseModel):
    """A single turn in the conversation."""

    id: str = Field(..., description="Identifier unique within the session")
    sender: Sender = Field(..., description="Who wrote the message")
    text: str = Field(..., min_length=1, description="Message body")
    emotion: Emotion | None = Field(
        None, description="Emotion detected for an AI turn"
    )
    timestamp: datetime = Field(default_factory=utcnow)
    reaction: Emotion | None = Field(
        None, description="Emotion the user reacted with on an AI message"
    )


class MoodEntry(BaseModel):
    """A timestamped emotion derived from one completed AI turn."""

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    emotion: Emotion
    summary: str = Field(..., description="Short 1-3 word summary of the turn")


class CustomMapping(BaseModel):
    """A user-defined keyword to emotion hint for the classifier."""

    model_config = ConfigDict(frozen=True)

    id: str
    keyword: str = Field(..., min_length=1)
    emotion: Emotion


class ClassificationResult(BaseModel):
    """Reply, emotion and summary produced for one user utterance."""

    reply: str
    emotion: Emotion
    summary: str


class MoodBalancerResult(BaseModel):
    """Structured comfort content produced by the mood balancer."""

    model_config = ConfigDict(extra="forbid")

    detected_emotion: str
    emotion_intensity: str
    suggested_voice_tone: str
    short_story_or_quote: str
    activity_suggestion: str
    ai_reply_text: str
    language: str


class UserProfile(BaseModel):
    """Profile document stored for each account, keyed by user id."""

    model_config = ConfigDict(populate_by_name=True)

    uid: str
    name: str | None = None
    email: str | None = None
    created_at: datetime | None = Field(None, alias="createdAt")
    last_login: datetime | None = Field(None, alias="lastLogin")
