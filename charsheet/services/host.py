"""Contracts of the host collaborators the engine is wired into."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from charsheet.models.history_models import Message
from charsheet.models.settings_models import InjectionPosition, InjectionRole

EventHandler = Callable[[], Awaitable[None]]


class HostEvent(str, Enum):
    """Host notifications the engine subscribes to."""

    MESSAGE_RENDERED = "message_rendered"
    MESSAGE_DELETED = "message_deleted"
    MESSAGE_UPDATED = "message_updated"
    MESSAGE_SWIPED = "message_swiped"
    CHAT_CHANGED = "chat_changed"


@dataclass(frozen=True)
class ConversationIdentity:
    """Identifies the active conversation; compared before persisting."""

    chat_id: Optional[str] = None
    group_id: Optional[str] = None
    character_id: Optional[str] = None

    def same_as(self, other: "ConversationIdentity") -> bool:
        """Group and chat must match; the character only matters outside groups."""
        if self.group_id != other.group_id or self.chat_id != other.chat_id:
            return False
        if not other.group_id and self.character_id != other.character_id:
            return False
        return True


class ChatHost(Protocol):
    """Host chat store and generation status consumed by the engine."""

    def get_chat(self) -> List[Message]:
        """Return the live history of the active conversation."""
        ...

    def conversation_identity(self) -> ConversationIdentity:
        ...

    def is_group_chat(self) -> bool:
        ...

    def is_group_generating(self) -> bool:
        ...

    def is_send_pressed(self) -> bool:
        ...

    def is_streaming(self) -> bool:
        ...

    async def save_chat(self) -> None:
        """Persist the active history; called through a debouncer."""
        ...

    def set_send_enabled(self, enabled: bool) -> None:
        """Suspend or resume new user input."""
        ...

    def set_extension_prompt(
        self,
        key: str,
        value: str,
        position: InjectionPosition,
        depth: int,
        scan: bool,
        role: InjectionRole,
    ) -> None:
        """Inject formatted sheet text into the host generation context."""
        ...

    def notify(self, level: str, message: str, title: str = "") -> None:
        """Show a one-line user-visible notice."""
        ...


class SiblingSummarizer(Protocol):
    """Second summarization subsystem chained by lock mode."""

    suspended: bool

    async def force_update(self, quiet: bool) -> str:
        """Run the sibling's update unconditionally, ignoring ``suspended``."""
        ...


class EventSource(Protocol):
    def on(self, event: HostEvent, handler: EventHandler) -> None:
        ...


class LocalEventSource:
    """In-process event source awaiting handlers in registration order."""

    def __init__(self) -> None:
        self._handlers: Dict[HostEvent, List[EventHandler]] = defaultdict(list)

    def on(self, event: HostEvent, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    async def emit(self, event: HostEvent) -> None:
        for handler in list(self._handlers[event]):
            await handler()


class InMemoryChatHost:
    """Single-conversation host kept in process memory.

    Backs the HTTP surface; notices and injected prompts are recorded so they
    can be read back by clients.
    """

    def __init__(
        self,
        chat: Optional[List[Message]] = None,
        identity: Optional[ConversationIdentity] = None,
    ) -> None:
        self.chat: List[Message] = chat if chat is not None else []
        self.identity = identity or ConversationIdentity(chat_id="default")
        self.group_generating = False
        self.send_pressed = False
        self.streaming = False
        self.send_enabled = True
        self.saves = 0
        self.extension_prompts: Dict[str, str] = {}
        self.notices: List[Tuple[str, str, str]] = []

    def get_chat(self) -> List[Message]:
        return self.chat

    def conversation_identity(self) -> ConversationIdentity:
        return self.identity

    def is_group_chat(self) -> bool:
        return self.identity.group_id is not None

    def is_group_generating(self) -> bool:
        return self.group_generating

    def is_send_pressed(self) -> bool:
        return self.send_pressed

    def is_streaming(self) -> bool:
        return self.streaming

    async def save_chat(self) -> None:
        self.saves += 1

    def set_send_enabled(self, enabled: bool) -> None:
        self.send_enabled = enabled

    def set_extension_prompt(
        self,
        key: str,
        value: str,
        position: InjectionPosition,
        depth: int,
        scan: bool,
        role: InjectionRole,
    ) -> None:
        self.extension_prompts[key] = value

    def notify(self, level: str, message: str, title: str = "") -> None:
        self.notices.append((level, message, title))
