"""
Speech playback coordination.

Text-to-speech itself is provided by an external engine (the browser's
speech synthesis in the web client). This module holds the parts EchoMind
decides: which locale to ask for, and the rule that only one utterance plays
at a time.

The server only uses `locale_for_language`, to attach a locale hint to mood
balancer responses. `Playback` is the client-side contract: a front end that
owns a speech engine wraps it in a `Synthesizer` and routes its speaker
buttons through one `Playback` instance. Nothing in the server constructs one.
"""

from typing import Protocol

LANGUAGE_LOCALES: dict[str, str] = {
    "English": "en-US",
    "Hindi": "hi-IN",
    "Gujarati": "gu-IN",
    "Marathi": "mr-IN",
    "Spanish": "es-ES",
    "French": "fr-FR",
    "Japanese": "ja-JP",
    "Bengali": "bn-IN",
    "Tamil": "ta-IN",
}

_LOCALES_BY_LOWER = {name.lower(): locale for name, locale in LANGUAGE_LOCALES.items()}


def locale_for_language(language: str | None) -> str | None:
    """Locale hint for a language name, or None to use the engine default."""
    if not language:
        return None
    return _LOCALES_BY_LOWER.get(language.strip().lower())


class Synthesizer(Protocol):
    """A text-to-speech engine."""

    def speak(self, text: str, locale: str | None) -> None: ...

    def cancel(self) -> None: ...


class Playback:
    """
    Single-instance playback controller.

    Starting a new utterance cancels the one in flight; requests are never
    queued. Toggling the utterance that is currently playing stops it.
    """

    def __init__(self, synthesizer: Synthesizer) -> None:
        self._synthesizer = synthesizer
        self._active: str | None = None

    @property
    def active(self) -> str | None:
        return self._active

    def toggle(self, key: str, text: str, language: str | None = None) -> bool:
        """
        Start or stop playback for `key`.

        Returns:
            True if playback started, False if it was stopped
        """
        if self._active == key:
            self.stop()
            return False

        self._synthesizer.cancel()
        self._active = key
        self._synthesizer.speak(text, locale_for_language(language))
        return True

    def stop(self) -> None:
        self._synthesizer.cancel()
        self._active = None

    def finished(self, key: str) -> None:
        """Called by the engine when an utterance ends or errors."""
        if self._active == key:
            self._active = None
