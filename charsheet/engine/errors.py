"""Error taxonomy and cycle outcomes of the update engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SheetUpdateError(RuntimeError):
    """Base error of the character sheet engine."""


class QuiescenceTimeout(SheetUpdateError):
    """Raised when the host did not settle within the polling bound."""

    def __init__(self, condition: str, attempts: int) -> None:
        super().__init__(f"{condition} did not clear after {attempts} attempts")
        self.condition = condition
        self.attempts = attempts


class BackendError(SheetUpdateError):
    """Raised when a generation backend cannot complete a call."""

    def __init__(self, backend: str, message: str) -> None:
        super().__init__(message)
        self.backend = backend
        self.message = message


class DelegatedSummaryError(BackendError):
    """Rejection returned by the delegated summarization service."""


class SkipReason(str, Enum):
    """Why an update cycle ended without persisting a sheet."""

    DISABLED = "disabled"
    STREAMING = "streaming"
    IN_FLIGHT = "in_flight"
    FROZEN = "frozen"
    UNCHANGED = "unchanged"
    POLICY_NOOP = "policy_noop"
    QUIESCENCE_TIMEOUT = "quiescence_timeout"
    EMPTY_RESULT = "empty_result"
    BACKEND_FAILURE = "backend_failure"
    DELEGATED_REJECTED = "delegated_rejected"
    STALE_CONTEXT = "stale_context"
    NO_WINDOW = "no_window"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of one update cycle: a persisted summary or a skip reason."""

    summary: Optional[str] = None
    reason: Optional[SkipReason] = None

    @classmethod
    def skipped(cls, reason: SkipReason) -> "UpdateResult":
        return cls(reason=reason)

    @property
    def ok(self) -> bool:
        return bool(self.summary)
