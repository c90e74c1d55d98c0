"""
Tests for speech locale selection and single-instance playback.
"""

from echomind.speech import Playback, locale_for_language


class RecordingSynthesizer:
    def __init__(self):
        self.events = []

    def speak(self, text, locale):
        self.events.append(("speak", text, locale))

    def cancel(self):
        self.events.append(("cancel",))


def test_locale_for_language():
    assert locale_for_language("Hindi") == "hi-IN"
    assert locale_for_language(" japanese ") == "ja-JP"
    assert locale_for_language("Klingon") is None
    assert locale_for_language(None) is None


class TestPlayback:
    def setup_method(self):
        self.synth = RecordingSynthesizer()
        self.playback = Playback(self.synth)

    def test_start_cancels_previous_utterance(self):
        assert self.playback.toggle("msg-1", "Hello", "Spanish")

        assert self.synth.events == [("cancel",), ("speak", "Hello", "es-ES")]
        assert self.playback.active == "msg-1"

    def test_toggle_same_key_stops(self):
        self.playback.toggle("msg-1", "Hello")

        assert not self.playback.toggle("msg-1", "Hello")
        assert self.playback.active is None
        assert self.synth.events[-1] == ("cancel",)

    def test_last_request_wins(self):
        self.playback.toggle("msg-1", "First")
        self.playback.toggle("msg-2", "Second")

        assert self.playback.active == "msg-2"
        assert self.synth.events[-2:] == [("cancel",), ("speak", "Second", None)]

    def test_finished_only_clears_matching_key(self):
        self.playback.toggle("msg-1", "First")
        self.playback.toggle("msg-2", "Second")

        self.playback.finished("msg-1")
        assert self.playback.active == "msg-2"

        self.playback.finished("msg-2")
        assert self.playback.active is None
