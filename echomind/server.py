"""
FastAPI server for the EchoMind service.

This module implements the HTTP API over in-memory sessions: chat turns,
reactions, custom mappings, the mood dashboard (with a Server-Sent Events
stream of new mood entries), insights, the wellness toolkit and account
sign-in.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field, field_validator

from . import __version__
from .aggregator import (
    distribution_series,
    dominant_emotion_by_day,
    emotion_distribution,
    is_insight_eligible,
)
from .auth import AuthAccount, FirebaseAuth
from .config import configure_logging, get_settings
from .emotions import REACTION_OPTIONS, Emotion, is_valid_emotion, normalize
from .errors import AuthError, ExternalServiceError, ValidationError
from .gateway import GenerationClient
from .generators import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    TOOLKIT_PRESETS,
    ToolPreset,
)
from .models import ChatMessage, CustomMapping, MoodBalancerResult, MoodEntry, View
from .session import ChatTurn, GeneratedText, Session, SessionRegistry, SessionSnapshot
from .speech import locale_for_language

logger = logging.getLogger(__name__)


# API Request/Response Schemas
def _emotion_or_none(value: str | None) -> Emotion | None:
    if value is None:
        return None
    if not is_valid_emotion(value):
        raise ValueError(f"Unknown emotion: {value}")
    return normalize(value)


class SessionCreate(BaseModel):
    """Payload for creating a session."""

    display_name: str | None = Field(None, description="Name used in the greeting")


class MessageCreate(BaseModel):
    """Payload for sending a chat message."""

    text: str = Field(..., description="The user's message")


class ReactionUpdate(BaseModel):
    """Payload for setting or clearing a reaction."""

    reaction: Emotion | None = Field(None, description="Reaction, or null to clear")

    @field_validator("reaction", mode="before")
    @classmethod
    def _validate_reaction(cls, value: str | None) -> Emotion | None:
        return _emotion_or_none(value)


class MappingCreate(BaseModel):
    """Payload for adding a custom keyword mapping."""

    keyword: str
    emotion: Emotion

    @field_validator("emotion", mode="before")
    @classmethod
    def _validate_emotion(cls, value: str) -> Emotion | None:
        return _emotion_or_none(value)


class ViewUpdate(BaseModel):
    view: View


class WellnessRequest(BaseModel):
    tool: str = Field(..., description="meditation or affirmation")
    topic: str


class BalancerRequest(BaseModel):
    text: str
    language: str = DEFAULT_LANGUAGE


class BalancerResponse(BaseModel):
    result: MoodBalancerResult
    locale: str | None = Field(None, description="Speech locale for the language")


class MoodResponse(BaseModel):
    """Response model for the mood dashboard."""

    entries: list[MoodEntry]
    distribution: dict[str, int]
    dominant_by_day: dict[str, Emotion]
    series: list[dict[str, str | int]]
    insight_eligible: bool


class ReactionResponse(BaseModel):
    message: ChatMessage | None
    options: list[Emotion]


class ToolkitResponse(BaseModel):
    presets: list[ToolPreset]
    languages: list[str]


class SignUpRequest(BaseModel):
    name: str
    email: str
    password: str


class SignInRequest(BaseModel):
    email: str
    password: str


class GoogleSignInRequest(BaseModel):
    id_token: str


class SignOutRequest(BaseModel):
    uid: str


class AccountResponse(BaseModel):
    uid: str
    email: str | None
    display_name: str | None
    id_token: str
    is_new_user: bool


def _account_response(account: AuthAccount) -> AccountResponse:
    return AccountResponse(
        uid=account.uid,
        email=account.email,
        display_name=account.display_name,
        id_token=account.id_token,
        is_new_user=account.is_new_user,
    )


def create_app(registry: SessionRegistry, auth: FirebaseAuth | None = None) -> FastAPI:
    """
    Create a FastAPI application over the given sessions.

    Args:
        registry: The SessionRegistry holding live sessions
        auth: Firebase client for the /auth endpoints, or None to disable them

    Returns:
        Configured FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Lifespan context manager for FastAPI application."""
        yield
        await registry.client.aclose()
        if auth is not None:
            await auth.aclose()

    app = FastAPI(
        title="EchoMind",
        description="An emotion-aware journaling companion",
        version=__version__,
        lifespan=lifespan,
    )

    @app.exception_handler(ValidationError)
    async def validation_error(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(ExternalServiceError)
    async def external_error(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        return JSONResponse(status_code=502, content={"detail": str(exc)})

    @app.exception_handler(AuthError)
    async def auth_error(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=401, content={"detail": exc.message, "code": exc.code}
        )

    def get_session(session_id: str) -> Session:
        try:
            return registry.get(session_id)
        except KeyError:
            raise HTTPException(status_code=404, detail="Session not found") from None

    def get_auth() -> FirebaseAuth:
        if auth is None:
            raise HTTPException(status_code=503, detail="Sign-in is not configured")
        return auth

    @app.get("/")
    async def root() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "echomind"}

    # MARK: - Sessions

    @app.post("/sessions", status_code=201)
    async def create_session(payload: SessionCreate) -> SessionSnapshot:
        session = await registry.create(display_name=payload.display_name)
        return session.snapshot()

    @app.get("/sessions/{session_id}")
    async def read_session(session: Session = Depends(get_session)) -> SessionSnapshot:
        return session.snapshot()

    @app.delete("/sessions/{session_id}", status_code=204)
    async def delete_session(session_id: str) -> None:
        if not await registry.drop(session_id):
            raise HTTPException(status_code=404, detail="Session not found")

    @app.put("/sessions/{session_id}/view")
    async def switch_view(
        payload: ViewUpdate, session: Session = Depends(get_session)
    ) -> SessionSnapshot:
        session.switch_view(payload.view)
        return session.snapshot()

    # MARK: - Chat

    @app.get("/sessions/{session_id}/messages")
    async def list_messages(
        session: Session = Depends(get_session),
    ) -> list[ChatMessage]:
        return list(session.conversation)

    @app.post("/sessions/{session_id}/messages")
    async def send_message(
        payload: MessageCreate, session: Session = Depends(get_session)
    ) -> ChatTurn:
        """
        Send a user message and receive the AI turn.

        Classification failures never surface here: the turn then carries the
        fallback reply tagged Anxiety.
        """
        return await session.send_message(payload.text)

    @app.put("/sessions/{session_id}/messages/{message_id}/reaction")
    async def set_reaction(
        message_id: str,
        payload: ReactionUpdate,
        session: Session = Depends(get_session),
    ) -> ReactionResponse:
        await session.set_reaction(message_id, payload.reaction)
        return ReactionResponse(
            message=session.conversation.get(message_id),
            options=list(REACTION_OPTIONS),
        )

    # MARK: - Mood dashboard

    @app.get("/sessions/{session_id}/mood")
    async def get_mood(
        tz: str | None = None, session: Session = Depends(get_session)
    ) -> MoodResponse:
        """
        Get the mood history with its aggregates.

        Args:
            tz: Optional IANA timezone used to group entries by day; the
                server's local timezone is used otherwise
        """
        try:
            zone = ZoneInfo(tz) if tz else None
        except (ZoneInfoNotFoundError, ValueError):
            raise HTTPException(
                status_code=422, detail=f"Unknown timezone: {tz}"
            ) from None

        entries = session.mood_history.entries()
        return MoodResponse(
            entries=entries,
            distribution={e.value: n for e, n in emotion_distribution(entries).items()},
            dominant_by_day=dominant_emotion_by_day(entries, zone),
            series=distribution_series(entries),
            insight_eligible=is_insight_eligible(entries),
        )

    @app.get("/sessions/{session_id}/mood/stream")
    async def stream_mood(
        session: Session = Depends(get_session),
    ) -> StreamingResponse:
        """
        Stream mood entries via Server-Sent Events.

        The stream replays the entries recorded so far and then sends each
        new entry as chat turns complete.

        Returns:
            StreamingResponse with text/event-stream content type
        """

        async def event_generator() -> AsyncGenerator[str, None]:
            """Generate SSE events for mood entries."""
            try:
                async with session.stream_mood() as mood_stream:
                    async for entry in mood_stream:
                        yield f"data: {entry.model_dump_json()}\n\n"
            except asyncio.CancelledError:
                # Client disconnected
                pass
            except Exception as e:
                logger.exception("Mood stream failed for session %s", session.id)
                error_data = json.dumps({"error": str(e)})
                yield f"event: error\ndata: {error_data}\n\n"

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Headers": "*",
            },
        )

    @app.post("/sessions/{session_id}/insights")
    async def generate_insights(
        session: Session = Depends(get_session),
    ) -> GeneratedText:
        return await session.generate_insights()

    # MARK: - Custom mappings

    @app.get("/sessions/{session_id}/mappings")
    async def list_mappings(
        session: Session = Depends(get_session),
    ) -> list[CustomMapping]:
        return list(session.mappings)

    @app.post("/sessions/{session_id}/mappings", status_code=201)
    async def add_mapping(
        payload: MappingCreate, session: Session = Depends(get_session)
    ) -> CustomMapping:
        return await session.add_mapping(payload.keyword, payload.emotion)

    @app.delete("/sessions/{session_id}/mappings/{mapping_id}", status_code=204)
    async def delete_mapping(
        mapping_id: str, session: Session = Depends(get_session)
    ) -> None:
        if not await session.delete_mapping(mapping_id):
            raise HTTPException(status_code=404, detail="Mapping not found")

    # MARK: - Toolkit

    @app.get("/toolkit")
    async def toolkit() -> ToolkitResponse:
        return ToolkitResponse(
            presets=list(TOOLKIT_PRESETS), languages=list(SUPPORTED_LANGUAGES)
        )

    @app.post("/sessions/{session_id}/toolkit/wellness")
    async def generate_wellness(
        payload: WellnessRequest, session: Session = Depends(get_session)
    ) -> GeneratedText:
        return await session.generate_wellness(payload.tool, payload.topic)

    @app.post("/sessions/{session_id}/toolkit/mood-balancer")
    async def generate_mood_balancer(
        payload: BalancerRequest, session: Session = Depends(get_session)
    ) -> BalancerResponse:
        result = await session.generate_mood_balancer(payload.text, payload.language)
        return BalancerResponse(
            result=result, locale=locale_for_language(result.language)
        )

    # MARK: - Accounts

    @app.post("/auth/signup", status_code=201)
    async def sign_up(
        payload: SignUpRequest, firebase: FirebaseAuth = Depends(get_auth)
    ) -> AccountResponse:
        account = await firebase.create_account(
            payload.name, payload.email, payload.password
        )
        return _account_response(account)

    @app.post("/auth/signin")
    async def sign_in(
        payload: SignInRequest, firebase: FirebaseAuth = Depends(get_auth)
    ) -> AccountResponse:
        account = await firebase.sign_in(payload.email, payload.password)
        return _account_response(account)

    @app.post("/auth/google")
    async def google_sign_in(
        payload: GoogleSignInRequest, firebase: FirebaseAuth = Depends(get_auth)
    ) -> AccountResponse:
        account = await firebase.google_sign_in(payload.id_token)
        return _account_response(account)

    @app.post("/auth/signout")
    async def sign_out(
        payload: SignOutRequest, firebase: FirebaseAuth = Depends(get_auth)
    ) -> dict[str, bool]:
        return {"signed_out": firebase.sign_out(payload.uid)}

    return app


def build_default_app() -> FastAPI:
    """Create the application from environment settings."""
    settings = get_settings()
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY is not set; chat replies will use the fallback")
    registry = SessionRegistry(
        GenerationClient.from_settings(settings),
        history_window=settings.history_window,
        max_sessions=settings.max_sessions,
    )
    return create_app(registry, auth=FirebaseAuth.from_settings(settings))


app = build_default_app()


def main() -> None:
    """Main entry point for the server."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "echomind.server:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
