"""
Aggregations over a session's mood history.

Every function here is pure: the result depends only on the entries passed in,
in the order they are passed. Empty input yields empty output.
"""

from collections.abc import Sequence
from datetime import tzinfo

from .emotions import EMOTION_COLORS, Emotion, normalize
from .models import MoodEntry

INSIGHT_MIN_ENTRIES = 3
DAY_KEY_FORMAT = "%Y-%m-%d"


def emotion_distribution(entries: Sequence[MoodEntry]) -> dict[Emotion, int]:
    """
    Count how often each emotion occurs in the history.

    Emotions that never occur are left out. Keys appear in first-seen order.
    """
    counts: dict[Emotion, int] = {}
    for entry in entries:
        emotion = normalize(entry.emotion)
        counts[emotion] = counts.get(emotion, 0) + 1
    return counts


def day_key(entry: MoodEntry, tz: tzinfo | None = None) -> str:
    """Calendar day of an entry in the display timezone (local if `tz` is None)."""
    return entry.timestamp.astimezone(tz).strftime(DAY_KEY_FORMAT)


def dominant_emotion_by_day(
    entries: Sequence[MoodEntry], tz: tzinfo | None = None
) -> dict[str, Emotion]:
    """
    Pick the most frequent emotion for each calendar day.

    Ties are broken by insertion order: the emotion that reached the winning
    count first keeps the day. With [Joy, Sadness] that is Joy; with
    [Joy, Sadness, Sadness, Joy] it is Sadness.

    Args:
        entries: Mood entries in the order they were recorded
        tz: Display timezone used to assign entries to days

    Returns:
        Mapping of "YYYY-MM-DD" to the dominant emotion, in first-seen day order
    """
    counts: dict[str, dict[Emotion, int]] = {}
    leaders: dict[str, tuple[Emotion, int]] = {}

    for entry in entries:
        key = day_key(entry, tz)
        emotion = normalize(entry.emotion)
        day_counts = counts.setdefault(key, {})
        day_counts[emotion] = day_counts.get(emotion, 0) + 1

        leader = leaders.get(key)
        if leader is None or day_counts[emotion] > leader[1]:
            leaders[key] = (emotion, day_counts[emotion])

    return {key: emotion for key, (emotion, _) in leaders.items()}


def is_insight_eligible(entries: Sequence[MoodEntry]) -> bool:
    """Insights need at least INSIGHT_MIN_ENTRIES recorded moods."""
    return len(entries) >= INSIGHT_MIN_ENTRIES


def distribution_series(entries: Sequence[MoodEntry]) -> list[dict[str, object]]:
    """Rows for the distribution bar chart: name, count and color token."""
    return [
        {"name": emotion.value, "count": count, "color": EMOTION_COLORS[emotion]}
        for emotion, count in emotion_distribution(entries).items()
    ]
