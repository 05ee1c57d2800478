"""
Chat assistant conversation loop.

Streams a model reply into the conversation, then interprets structured
payloads (search, reset, explicit project lists) and rewrites the reply
into a short confirmation.
"""

from typing import Any, AsyncIterator, Awaitable, Callable, List, Mapping, Optional, Protocol, Sequence

from shared.logging import get_logger

from portfolio_tools.projects.search import SearchOptions, search_projects
from portfolio_tools.storage.adapters import ChatHistoryStore, ChatMessage
from portfolio_tools.storage.records import now_ms

from .payload import extract_assistant_payload, is_chat_reset_payload

logger = get_logger(__name__)

GREETING = "Hello! How can I help you explore this creative portfolio?"
UNAVAILABLE_REPLY = "Sorry, I am unable to connect right now."
RESET_REPLY = "Filters cleared—back to featured selections."
PROJECTS_REPLY = "I've updated the grid with your search results."
ERROR_REPLY = "Sorry, something went wrong. Please try again."


class ChatSession(Protocol):
    def send_message_stream(self, message: str) -> AsyncIterator[str]:
        ...


SessionFactory = Callable[[], Awaitable[ChatSession]]


def format_search_reply(count: int, query: str, type_filter: Optional[str] = None) -> str:
    suffix = "" if count == 1 else "s"
    type_part = f" (type: {type_filter})" if type_filter else ""
    return f"Found {count} project{suffix} for “{query}”{type_part}."


class ChatAssistant:
    """Conversation state plus the send loop for the portfolio chat widget."""

    def __init__(
        self,
        session_factory: SessionFactory,
        projects: Sequence[Any],
        on_search: Callable[[List[Any]], None],
        on_reset: Optional[Callable[[], None]] = None,
        history: Optional[ChatHistoryStore] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.session_factory = session_factory
        self.projects = projects
        self.on_search = on_search
        self.on_reset = on_reset
        self.history = history
        self.clock = clock
        self.messages: List[ChatMessage] = []
        self.is_loading = False
        self._session: Optional[ChatSession] = None

    async def open(self) -> None:
        """Create the model session and restore any saved conversation."""
        try:
            self._session = await self.session_factory()
        except Exception as exc:
            logger.warning("Chat session could not be initialized", error=str(exc))
            self.messages = [ChatMessage(id="error", sender="ai", text=UNAVAILABLE_REPLY)]
            return

        saved = await self.history.load() if self.history is not None else []
        self.messages = saved or [ChatMessage(id="initial", sender="ai", text=GREETING)]

    def _set_text(self, message_id: str, text: str) -> None:
        for message in self.messages:
            if message.id == message_id:
                message.text = text

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """
        Send *text* and return the finished AI message.

        Returns None when the input is blank, a reply is already streaming or
        no session is available.
        """
        if not text.strip() or self.is_loading or self._session is None:
            return None

        now = self.clock()
        ai_id = str(now + 1)
        self.messages.append(ChatMessage(id=str(now), sender="user", text=text))
        ai_message = ChatMessage(id=ai_id, sender="ai", text="")
        self.messages.append(ai_message)
        self.is_loading = True

        try:
            full_text = ""
            async for chunk in self._session.send_message_stream(text):
                full_text += chunk
                self._set_text(ai_id, full_text)

            self._apply_payload(ai_id, extract_assistant_payload(full_text))
        except Exception as exc:
            logger.error("Error sending chat message", error=str(exc), exc_info=True)
            self._set_text(ai_id, ERROR_REPLY)
        finally:
            self.is_loading = False

        if self.history is not None:
            await self.history.save(self.messages)
        return ai_message

    def _apply_payload(self, ai_id: str, payload: Any) -> None:
        if not payload or not isinstance(payload, Mapping):
            return

        if is_chat_reset_payload(payload):
            if self.on_reset is not None:
                self.on_reset()
            self._set_text(ai_id, RESET_REPLY)
            return

        arguments = payload.get("arguments")
        if payload.get("name") == "searchProjects" and isinstance(arguments, Mapping):
            query = arguments.get("query") if isinstance(arguments.get("query"), str) else ""
            opts = SearchOptions.from_dict(arguments.get("opts"))
            results = search_projects(self.projects, query, opts)
            self.on_search(results)
            self._set_text(ai_id, format_search_reply(len(results), query, opts.type))
            return

        if isinstance(payload.get("projects"), list):
            self.on_search(payload["projects"])
            self._set_text(ai_id, PROJECTS_REPLY)

    async def clear(self) -> None:
        """Forget the conversation, including the saved copy."""
        self.messages = []
        if self.history is not None:
            await self.history.clear()
