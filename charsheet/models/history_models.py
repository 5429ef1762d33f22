"""Message structures shared by the engine and the host chat store."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

SUMMARY_KEY = "summary"


@dataclass
class Message:
    """One turn of the host conversation.

    The ``annotations`` bag belongs to the host store; the engine only writes
    the ``summary`` key on the message it checkpoints.
    """

    speaker: str
    text: str = ""
    is_system: bool = False
    is_user: bool = False
    annotations: Dict[str, Any] = field(default_factory=dict)

    @property
    def summary(self) -> Optional[str]:
        """Return the checkpoint stored on this message, if any."""
        value = self.annotations.get(SUMMARY_KEY) if self.annotations else None
        return value or None

    def set_summary(self, value: str) -> None:
        if self.annotations is None:
            self.annotations = {}
        self.annotations[SUMMARY_KEY] = value

    def clear_summary(self) -> None:
        if self.annotations:
            self.annotations.pop(SUMMARY_KEY, None)

    @property
    def is_summarizable(self) -> bool:
        """Only non-system messages with text feed a summarization window."""
        return not self.is_system and bool(self.text)


@dataclass(frozen=True)
class Checkpoint:
    """Summary snapshot located in a history."""

    content: str
    index: int


@dataclass(frozen=True)
class Fingerprint:
    """Length and text hash of the newest message at the end of a cycle."""

    last_seen_length: Optional[int] = None
    last_seen_hash: Optional[str] = None
