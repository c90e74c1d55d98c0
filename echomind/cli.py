"""
Command-line interface tools for the EchoMind service.
"""

import asyncio
import json
from collections.abc import Coroutine
from typing import Any, Optional

import httpx
import typer
from httpx_sse import ServerSentEvent, aconnect_sse

from .emotions import is_valid_emotion, normalize
from .generators import DEFAULT_LANGUAGE
from .models import MoodEntry

DEFAULT_BASE_URL = "http://localhost:8000"
QUIT_WORDS = {"quit", "exit", ":q"}

app = typer.Typer(help="EchoMind CLI tools")

BaseUrl = typer.Option(
    DEFAULT_BASE_URL, "--url", "-u", help="Base URL of the EchoMind service"
)


def main() -> None:
    """Entry point for the echomind CLI."""
    app()


# MARK: - Commands


@app.command()
def start(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Your display name"),
    base_url: str = BaseUrl,
) -> None:
    """Start a new session and print its id."""

    async def _start() -> None:
        async with httpx.AsyncClient(base_url=base_url) as client:
            session = await _create_session(client, name)
            print(session["id"])

    _run_with_error_handling(_start(), base_url)


@app.command()
def send(
    session_id: str = typer.Argument(..., help="Session id"),
    text: str = typer.Argument(..., help="Message to send"),
    base_url: str = BaseUrl,
) -> None:
    """Send one message and print the reply."""

    async def _send() -> None:
        async with httpx.AsyncClient(base_url=base_url, timeout=None) as client:
            print(await _send_message(client, session_id, text))

    _run_with_error_handling(_send(), base_url)


@app.command()
def chat(
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Your display name"),
    base_url: str = BaseUrl,
) -> None:
    """Chat interactively in a new session. Type 'quit' to leave."""

    async def _chat() -> None:
        async with httpx.AsyncClient(base_url=base_url, timeout=None) as client:
            session = await _create_session(client, name)
            response = await client.get(f"/sessions/{session['id']}/messages")
            response.raise_for_status()
            for message in response.json():
                print(_format_reply(message))
            print(f"(session {session['id']})")

            while True:
                text = await asyncio.to_thread(typer.prompt, "you")
                if text.strip().lower() in QUIT_WORDS:
                    break
                if not text.strip():
                    continue
                print(await _send_message(client, session["id"], text))

    _run_with_error_handling(_chat(), base_url)


@app.command()
def mood(
    session_id: str = typer.Argument(..., help="Session id"),
    tz: Optional[str] = typer.Option(None, "--tz", help="Timezone for day grouping"),
    base_url: str = BaseUrl,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output raw JSON"),
) -> None:
    """Show the mood distribution and the dominant emotion per day."""

    async def _mood() -> None:
        async with httpx.AsyncClient(base_url=base_url) as client:
            params = {"tz": tz} if tz else None
            response = await client.get(f"/sessions/{session_id}/mood", params=params)
            response.raise_for_status()
            result = response.json()

            if json_output:
                print(json.dumps(result, indent=2))
                return

            if not result["entries"]:
                print("No moods recorded yet")
                return

            print("Distribution:")
            for name, count in result["distribution"].items():
                print(f"  {name:<15} {count}")
            print("By day:")
            for day, emotion in result["dominant_by_day"].items():
                print(f"  {day}  {emotion}")

    _run_with_error_handling(_mood(), base_url)


@app.command()
def insight(
    session_id: str = typer.Argument(..., help="Session id"),
    base_url: str = BaseUrl,
) -> None:
    """Generate an insight from the session's mood history."""

    async def _insight() -> None:
        async with httpx.AsyncClient(base_url=base_url, timeout=None) as client:
            response = await client.post(f"/sessions/{session_id}/insights")
            response.raise_for_status()
            print(response.json()["text"])

    _run_with_error_handling(_insight(), base_url)


@app.command("map")
def add_mapping(
    session_id: str = typer.Argument(..., help="Session id"),
    keyword: str = typer.Argument(..., help="Keyword or phrase"),
    emotion: str = typer.Argument(..., help="Emotion to map it to"),
    base_url: str = BaseUrl,
) -> None:
    """Map a keyword to an emotion for this session."""
    if not is_valid_emotion(emotion):
        print(f"Error: unknown emotion '{emotion}'")
        raise typer.Exit(1)

    async def _map() -> None:
        async with httpx.AsyncClient(base_url=base_url) as client:
            response = await client.post(
                f"/sessions/{session_id}/mappings",
                json={"keyword": keyword, "emotion": normalize(emotion).value},
            )
            response.raise_for_status()
            mapping = response.json()
            print(f'"{mapping["keyword"]}" -> {mapping["emotion"]}')

    _run_with_error_handling(_map(), base_url)


@app.command()
def wellness(
    session_id: str = typer.Argument(..., help="Session id"),
    tool: str = typer.Argument(..., help="meditation or affirmation"),
    topic: str = typer.Argument(..., help="What the tool should help with"),
    base_url: str = BaseUrl,
) -> None:
    """Generate a guided meditation or a set of affirmations."""

    async def _wellness() -> None:
        async with httpx.AsyncClient(base_url=base_url, timeout=None) as client:
            response = await client.post(
                f"/sessions/{session_id}/toolkit/wellness",
                json={"tool": tool, "topic": topic},
            )
            response.raise_for_status()
            print(response.json()["text"])

    _run_with_error_handling(_wellness(), base_url)


@app.command()
def balance(
    session_id: str = typer.Argument(..., help="Session id"),
    text: str = typer.Argument(..., help="How you are feeling"),
    language: str = typer.Option(DEFAULT_LANGUAGE, "--language", "-l"),
    base_url: str = BaseUrl,
) -> None:
    """Get mood balancer content in your preferred language."""

    async def _balance() -> None:
        async with httpx.AsyncClient(base_url=base_url, timeout=None) as client:
            response = await client.post(
                f"/sessions/{session_id}/toolkit/mood-balancer",
                json={"text": text, "language": language},
            )
            response.raise_for_status()
            result = response.json()["result"]
            print(result["ai_reply_text"])
            print()
            emotion = result["detected_emotion"]
            print(f"Emotion: {emotion} ({result['emotion_intensity']})")
            print(f"Tone: {result['suggested_voice_tone']}")
            print()
            print(result["short_story_or_quote"])
            print()
            print(f"Try this: {result['activity_suggestion']}")

    _run_with_error_handling(_balance(), base_url)


@app.command()
def stream(
    session_id: str = typer.Argument(..., help="Session id"),
    base_url: str = BaseUrl,
) -> None:
    """Stream mood entries in real-time."""

    async def _stream() -> None:
        url = f"{base_url}/sessions/{session_id}/mood/stream"
        print(f"Streaming from {url}... (Ctrl+C to stop)")

        async with httpx.AsyncClient(timeout=None) as client:
            async with aconnect_sse(client, "GET", url) as event_source:
                async for sse in event_source.aiter_sse():
                    _handle_sse_event(sse)

    _run_with_error_handling(_stream(), base_url)


@app.command()
def serve() -> None:
    """Run the EchoMind server."""
    from .server import main as server_main

    server_main()


# MARK: - Private Helpers


async def _create_session(
    client: httpx.AsyncClient, name: str | None
) -> dict[str, Any]:
    response = await client.post("/sessions", json={"display_name": name})
    response.raise_for_status()
    return response.json()


async def _send_message(client: httpx.AsyncClient, session_id: str, text: str) -> str:
    response = await client.post(
        f"/sessions/{session_id}/messages", json={"text": text}
    )
    response.raise_for_status()
    return _format_reply(response.json()["ai_message"])


def _format_reply(message: dict[str, Any]) -> str:
    """Format an AI message with its emotion tag."""
    if message.get("sender") != "ai":
        return f"you > {message['text']}"
    emotion = normalize(message.get("emotion"))
    return f"[{emotion.value}] {message['text']}"


def _format_entry(entry: MoodEntry) -> str:
    """Format a mood entry with its local time."""
    timestamp = entry.timestamp.astimezone().strftime("%H:%M:%S")
    return f"{timestamp} > {entry.emotion.value} ({entry.summary})"


def _handle_sse_event(sse: ServerSentEvent) -> None:
    """Handle a single SSE event."""
    try:
        if sse.event == "error":
            error_data = json.loads(sse.data)
            print(f"Server error: {error_data.get('error', 'Unknown error')}")
            return

        entry = MoodEntry.model_validate_json(sse.data)
        print(_format_entry(entry))

    except ValueError as e:
        print(f"Warning: Could not parse SSE data: {sse.data} - {e}")


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], base_url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except httpx.ConnectError:
        print(f"Error: Could not connect to {base_url}")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        print(f"Error: HTTP {e.response.status_code} {_error_detail(e.response)}")
        raise typer.Exit(1)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error: {error_msg}")
        raise typer.Exit(1)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    detail = body.get("detail", "") if isinstance(body, dict) else ""
    return detail if isinstance(detail, str) else json.dumps(detail)


if __name__ == "__main__":
    app()
