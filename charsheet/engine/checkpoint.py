"""Locate the summary checkpoint currently in effect in a linear history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from charsheet.models.history_models import Checkpoint, Message


def find_checkpoint(history: Sequence[Message]) -> Optional[Checkpoint]:
    """Return the most recent checkpoint, ignoring the newest message.

    The newest message is presumed still in progress, so a checkpoint on it is
    never considered current. The returned index refers to ``history``.
    """
    if len(history) < 2:
        return None

    for index in range(len(history) - 2, -1, -1):
        content = history[index].summary
        if content:
            return Checkpoint(content=content, index=index)

    return None


def latest_summary(history: Sequence[Message]) -> str:
    """Return the content of the current checkpoint or an empty string."""
    checkpoint = find_checkpoint(history)
    return checkpoint.content if checkpoint else ""


def format_entry(message: Message) -> str:
    return f"{message.speaker}: {message.text}"


@dataclass(frozen=True)
class HistorySnapshot:
    """Immutable view of the host history taken once per update cycle.

    Messages are shared with the host store so annotation writes land on the
    real messages, but later structural edits of the store do not shift the
    indices used during the cycle.
    """

    messages: Tuple[Message, ...]

    @classmethod
    def capture(cls, history: Sequence[Message]) -> "HistorySnapshot":
        return cls(messages=tuple(history))

    def __len__(self) -> int:
        return len(self.messages)

    def __getitem__(self, index: int) -> Message:
        return self.messages[index]

    @property
    def newest(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def excluding_last(self) -> Tuple[Message, ...]:
        """Return every message but the newest, in conversation order."""
        return self.messages[:-1]

    def checkpoint(self) -> Optional[Checkpoint]:
        return find_checkpoint(self.messages)

    def index_of_most_recent_checkpoint(self) -> Optional[int]:
        checkpoint = self.checkpoint()
        return checkpoint.index if checkpoint else None

    def default_target_index(self) -> Optional[int]:
        """Index of the message just before the newest one, clamped to 0."""
        if not self.messages:
            return None
        return max(len(self.messages) - 2, 0)
