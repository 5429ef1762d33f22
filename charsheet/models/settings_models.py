"""Extension settings and the trigger policy captured from them."""

from __future__ import annotations

from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from charsheet.engine.prompt_loader import PromptLoader

_DEFAULTS = PromptLoader().load_defaults()


class SummarySource(str, Enum):
    """Generation backend families selectable by the user."""

    MAIN = "main"
    EXTRAS = "extras"
    LOCAL = "local"


class PromptBuilder(IntEnum):
    """How the main API request is built."""

    DEFAULT = 0
    RAW_BLOCKING = 1
    RAW_NON_BLOCKING = 2


class InjectionPosition(IntEnum):
    """Where the host places the injected sheet."""

    NONE = -1
    IN_PROMPT = 0
    IN_CHAT = 1
    BEFORE_PROMPT = 2


class InjectionRole(IntEnum):
    SYSTEM = 0
    USER = 1
    ASSISTANT = 2


class TriggerPolicy(BaseModel):
    """Immutable snapshot of the trigger configuration for one evaluation."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    frozen: bool = False
    message_interval: int = Field(default=10, ge=0)
    force_word_threshold: int = Field(default=0, ge=0)
    min_history_length: int = Field(default=10, ge=0)
    target_words: int = Field(default=300, ge=0)
    prompt: str = ""


class SheetSettings(BaseModel):
    """User-facing settings of the character sheet engine.

    Unknown keys from stored payloads are ignored and missing keys fall back
    to the defaults below.
    """

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    enabled: bool = True
    frozen: bool = False
    prompt: str = _DEFAULTS["prompt"]
    template: str = _DEFAULTS["template"]
    position: InjectionPosition = InjectionPosition.IN_PROMPT
    role: InjectionRole = InjectionRole.SYSTEM
    scan: bool = False
    depth: int = Field(default=2, ge=0)

    prompt_interval: int = Field(default=10, ge=0)
    prompt_force_words: int = Field(default=0, ge=0)
    prompt_words: int = Field(default=300, ge=0)
    min_history_length: Optional[int] = Field(default=None, ge=0)

    override_response_length: int = Field(default=0, ge=0)
    max_messages_per_request: int = Field(default=0, ge=0)

    lock_mode: bool = False
    source: SummarySource = SummarySource.MAIN
    prompt_builder: PromptBuilder = PromptBuilder.DEFAULT
    skip_wian: bool = False

    def trigger_policy(self) -> TriggerPolicy:
        """Capture the trigger fields as an immutable policy snapshot."""
        min_length = (
            self.min_history_length
            if self.min_history_length is not None
            else self.prompt_interval
        )
        return TriggerPolicy(
            enabled=self.enabled,
            frozen=self.frozen,
            message_interval=self.prompt_interval,
            force_word_threshold=self.prompt_force_words,
            min_history_length=min_length,
            target_words=self.prompt_words,
            prompt=self.prompt,
        )
