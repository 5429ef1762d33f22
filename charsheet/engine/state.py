"""Per-engine mutable state: the in-flight guard and the last-seen fingerprint."""

from __future__ import annotations

import hashlib
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Sequence

from charsheet.models.history_models import Fingerprint, Message


def text_hash(text: str) -> str:
    return hashlib.sha1((text or "").encode("utf-8")).hexdigest()


def fingerprint_of(history: Sequence[Message]) -> Fingerprint:
    """Fingerprint the newest message of ``history``."""
    if not history:
        return Fingerprint(last_seen_length=0, last_seen_hash=text_hash(""))
    return Fingerprint(
        last_seen_length=len(history), last_seen_hash=text_hash(history[-1].text)
    )


@dataclass
class EngineState:
    """State owned by one engine instance.

    ``in_flight`` is true exactly while one cycle holds the guard; it is
    released unconditionally when the guarded block exits.
    """

    in_flight: bool = False
    fingerprint: Fingerprint = field(default_factory=Fingerprint)

    def try_acquire(self) -> bool:
        """Take the in-flight guard; False if another cycle already holds it."""
        if self.in_flight:
            return False
        self.in_flight = True
        return True

    def release(self) -> None:
        self.in_flight = False

    @contextmanager
    def guarded(self) -> Iterator[None]:
        """Hold an already acquired guard for the duration of the block."""
        try:
            yield
        finally:
            self.release()

    def is_unchanged(self, history: Sequence[Message]) -> bool:
        """True when the newest message matches the recorded fingerprint."""
        if not history:
            return True
        return fingerprint_of(history) == self.fingerprint

    def was_truncated(self, history: Sequence[Message]) -> bool:
        seen = self.fingerprint.last_seen_length
        return seen is not None and len(history) < seen

    def was_edited(self, history: Sequence[Message]) -> bool:
        """True when the newest message changed text without the length changing."""
        if not history:
            return False
        current = fingerprint_of(history)
        return (
            current.last_seen_length == self.fingerprint.last_seen_length
            and current.last_seen_hash != self.fingerprint.last_seen_hash
        )

    def record(self, history: Sequence[Message]) -> None:
        self.fingerprint = fingerprint_of(history)
