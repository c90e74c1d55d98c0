"""
Tests for the command-line client.
"""

from httpx_sse import ServerSentEvent
from typer.testing import CliRunner

from echomind.cli import _format_reply, _handle_sse_event, app

runner = CliRunner()
UNREACHABLE = "http://127.0.0.1:9"


def test_map_rejects_unknown_emotion():
    result = runner.invoke(app, ["map", "session-1", "gym", "Euphoria"])

    assert result.exit_code == 1
    assert "unknown emotion 'Euphoria'" in result.output


def test_unreachable_server():
    result = runner.invoke(app, ["send", "session-1", "hello", "--url", UNREACHABLE])

    assert result.exit_code == 1
    assert f"Could not connect to {UNREACHABLE}" in result.output


def test_format_reply():
    ai = {"sender": "ai", "text": "I hear you.", "emotion": "sadness"}
    user = {"sender": "user", "text": "Rough day"}

    assert _format_reply(ai) == "[Sadness] I hear you."
    assert _format_reply(user) == "you > Rough day"


def test_handle_sse_event(capsys):
    data = (
        '{"id": "mood-1", "timestamp": "2024-05-01T12:00:00Z",'
        ' "emotion": "Joy", "summary": "Good news"}'
    )

    _handle_sse_event(ServerSentEvent(data=data))
    _handle_sse_event(ServerSentEvent(event="error", data='{"error": "boom"}'))
    _handle_sse_event(ServerSentEvent(data="not json"))

    lines = capsys.readouterr().out.splitlines()
    assert lines[0].endswith("> Joy (Good news)")
    assert lines[1] == "Server error: boom"
    assert lines[2].startswith("Warning: Could not parse SSE data")
