"""
Session-scoped state for the EchoMind companion.

A Session is the explicit state object behind one user's visit: the active
view, loading flags, the conversation, the mood history, the user's custom
mappings and the latest generated content. Handlers receive the Session they
act on; nothing here is global.

State changes are serialized with an asyncio.Condition. External calls run
outside the lock, so independent actions (a chat turn and a wellness tool
request, for example) can be in flight at the same time.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Literal

from pydantic import BaseModel

from .aggregator import is_insight_eligible
from .classifier import Classifier
from .config import DEFAULT_MAX_SESSIONS
from .emotions import Emotion
from .errors import ExternalServiceError
from .gateway import GenerationClient
from .generators import (
    DEFAULT_LANGUAGE,
    generate_insight,
    generate_mood_balancer,
    generate_wellness_content,
)
from .models import ChatMessage, CustomMapping, MoodBalancerResult, MoodEntry, View
from .store import DEFAULT_HISTORY_WINDOW, ConversationStore, MappingTable, MoodHistory

logger = logging.getLogger(__name__)

LoadingSlice = Literal["chat", "insight", "toolkit", "balancer"]

WELCOME_TEMPLATE = (
    "Hello, {name}. This is a private, safe space to reflect. "
    "How are you feeling today?"
)
NOT_ENOUGH_DATA_MESSAGE = (
    "There isn't enough data yet to generate insights. "
    "Keep journaling to see your patterns."
)
INSIGHT_FAILED_MESSAGE = (
    "Sorry, I couldn't generate insights at this time. Please try again later."
)
WELLNESS_FAILED_MESSAGE = (
    "Sorry, I couldn't generate this tool right now. Please try again later."
)


class ChatTurn(BaseModel):
    """The records produced by one completed send."""

    user_message: ChatMessage
    ai_message: ChatMessage
    mood_entry: MoodEntry


class GeneratedText(BaseModel):
    """Text shown to the user after a generation request."""

    text: str
    status: Literal["generated", "not_enough_data", "failed"]


class SessionSnapshot(BaseModel):
    """Serializable view of a session's UI state."""

    id: str
    display_name: str | None
    view: View
    loading: dict[str, bool]
    message_count: int
    mood_count: int
    insight: str | None = None
    toolkit_tool: str | None = None
    toolkit_content: str | None = None
    balancer_result: MoodBalancerResult | None = None


class Session:
    """
    State and operations for one user session.

    Args:
        client: Generation client used for classification and content
        display_name: Name used in the welcome message
        history_window: How many recent messages the classifier sees
        session_id: Optional explicit id (a random one is generated otherwise)
    """

    def __init__(
        self,
        client: GenerationClient,
        display_name: str | None = None,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        session_id: str | None = None,
    ) -> None:
        self.id = session_id or uuid.uuid4().hex
        self.display_name = display_name
        self.view: View = "chat"
        self.loading: dict[str, bool] = {
            "chat": False,
            "insight": False,
            "toolkit": False,
            "balancer": False,
        }
        self.conversation = ConversationStore()
        self.mood_history = MoodHistory()
        self.mappings = MappingTable()
        self.insight: str | None = None
        self.toolkit_tool: str | None = None
        self.toolkit_content: str | None = None
        self.balancer_result: MoodBalancerResult | None = None

        self._client = client
        self._classifier = Classifier(client)
        self._history_window = history_window
        self._condition = asyncio.Condition()
        self._closed = False

        self.conversation.append_ai_message(
            WELCOME_TEMPLATE.format(name=display_name or "there"), Emotion.CALM
        )

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            display_name=self.display_name,
            view=self.view,
            loading=dict(self.loading),
            message_count=len(self.conversation),
            mood_count=len(self.mood_history),
            insight=self.insight,
            toolkit_tool=self.toolkit_tool,
            toolkit_content=self.toolkit_content,
            balancer_result=self.balancer_result,
        )

    def switch_view(self, view: View) -> None:
        self.view = view

    # MARK: - Chat

    async def send_message(self, text: str) -> ChatTurn:
        """
        Run one chat turn.

        The user message is stored first, then classified together with the
        recent window (which includes it) and the user's mappings. The AI
        reply and its mood entry are appended together and subscribers to
        the mood stream are notified.

        Raises:
            ValidationError: If the text is empty; nothing is stored
        """
        async with self._condition:
            user_message = self.conversation.append_user_message(text)
            history = self.conversation.recent_window(self._history_window)
            overrides = self.mappings.for_classifier()

        with self._loading("chat"):
            result = await self._classifier.classify(text, history, overrides)

        async with self._condition:
            ai_message = self.conversation.append_ai_message(
                result.reply, result.emotion
            )
            entry = self.mood_history.append(result.emotion, result.summary)
            self._condition.notify_all()

        logger.debug("Session %s recorded %s", self.id, entry.emotion.value)
        return ChatTurn(
            user_message=user_message, ai_message=ai_message, mood_entry=entry
        )

    async def set_reaction(self, message_id: str, reaction: Emotion | None) -> None:
        async with self._condition:
            self.conversation.set_reaction(message_id, reaction)

    # MARK: - Mappings

    async def add_mapping(self, keyword: str, emotion: Emotion) -> CustomMapping:
        async with self._condition:
            return self.mappings.add(keyword, emotion)

    async def delete_mapping(self, mapping_id: str) -> bool:
        async with self._condition:
            return self.mappings.remove(mapping_id)

    # MARK: - Generated content

    async def generate_insights(self) -> GeneratedText:
        """Refresh the dashboard insight. Mood history is never modified."""
        entries = self.mood_history.entries()
        if not is_insight_eligible(entries):
            self.insight = NOT_ENOUGH_DATA_MESSAGE
            return GeneratedText(text=self.insight, status="not_enough_data")

        self.insight = None
        with self._loading("insight"):
            try:
                outcome = GeneratedText(
                    text=await generate_insight(self._client, entries),
                    status="generated",
                )
            except ExternalServiceError:
                outcome = GeneratedText(text=INSIGHT_FAILED_MESSAGE, status="failed")

        self.insight = outcome.text
        return outcome

    async def generate_wellness(self, tool: str, topic: str) -> GeneratedText:
        """
        Generate a wellness tool for the toolkit view.

        Raises:
            ValidationError: For an unknown tool or empty topic
        """
        self.toolkit_tool = f"{tool}-{topic}"
        self.toolkit_content = None
        with self._loading("toolkit"):
            try:
                outcome = GeneratedText(
                    text=await generate_wellness_content(self._client, tool, topic),
                    status="generated",
                )
            except ExternalServiceError:
                outcome = GeneratedText(text=WELLNESS_FAILED_MESSAGE, status="failed")

        self.toolkit_content = outcome.text
        return outcome

    async def generate_mood_balancer(
        self, text: str, language: str = DEFAULT_LANGUAGE
    ) -> MoodBalancerResult:
        """
        Generate mood balancer content.

        Raises:
            ValidationError: If the text is empty
            ExternalServiceError: If generation fails; the previous result is
                cleared
        """
        self.balancer_result = None
        with self._loading("balancer"):
            result = await generate_mood_balancer(self._client, text, language)
        self.balancer_result = result
        return result

    # MARK: - Mood stream

    @asynccontextmanager
    async def stream_mood(
        self,
    ) -> AsyncGenerator[AsyncGenerator[MoodEntry, None], None]:
        """
        Stream mood entries to a subscriber.

        The generator first replays the entries recorded so far, then yields
        each new entry as it is appended. It ends when the session is closed.
        """

        async def entry_generator() -> AsyncGenerator[MoodEntry, None]:
            seen = 0
            try:
                while True:
                    async with self._condition:
                        await self._condition.wait_for(
                            lambda: self._closed or len(self.mood_history) > seen
                        )
                        batch = self.mood_history.entries()[seen:]
                        closed = self._closed

                    for entry in batch:
                        yield entry
                    seen += len(batch)

                    if closed:
                        return
            except (asyncio.CancelledError, GeneratorExit):
                return

        yield entry_generator()

    async def close(self) -> None:
        """Wake and end every mood stream subscriber."""
        async with self._condition:
            self._closed = True
            self._condition.notify_all()

    @contextmanager
    def _loading(self, name: LoadingSlice) -> Iterator[None]:
        self.loading[name] = True
        try:
            yield
        finally:
            self.loading[name] = False


class SessionRegistry:
    """
    Live sessions keyed by id.

    At most `max_sessions` sessions are kept. Creating one more evicts the
    least recently used session, which is closed so its mood streams end.
    """

    def __init__(
        self,
        client: GenerationClient,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._client = client
        self._history_window = history_window
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, Session] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    @property
    def client(self) -> GenerationClient:
        return self._client

    async def create(self, display_name: str | None = None) -> Session:
        session = Session(
            self._client,
            display_name=display_name,
            history_window=self._history_window,
        )
        self._sessions[session.id] = session
        logger.info("Created session %s", session.id)

        while len(self._sessions) > self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            await evicted.close()
            logger.info("Evicted idle session %s", evicted_id)
        return session

    def get(self, session_id: str) -> Session:
        """Raises KeyError for unknown ids. Marks the session as recently used."""
        session = self._sessions[session_id]
        self._sessions.move_to_end(session_id)
        return session

    async def drop(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info("Dropped session %s", session_id)
        return True
