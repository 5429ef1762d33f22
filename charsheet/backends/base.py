"""Base interface and capability flags of the generation backends."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from charsheet.models.history_models import Message

REASONING_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)


def strip_reasoning(text: str) -> str:
    """Remove ``<think>`` reasoning blocks some models prepend to their answer."""
    return REASONING_BLOCK.sub("", text or "").strip()


@dataclass(frozen=True)
class BackendCapabilities:
    """What a backend needs from the orchestrator and what it supports.

    Attributes:
        raw_window: request must carry a bounded window built by the assembler.
        blocks_input: user input is suspended while the call is outstanding.
        response_length_cap: a response cap is sent only when one is configured.
        split_roles: request is sent as a system/user message pair.
        counts_tokens: budget is measured with a real tokenizer.
        delegated: backend summarizes a whole block instead of extending a sheet.
    """

    raw_window: bool = False
    blocks_input: bool = False
    response_length_cap: bool = False
    split_roles: bool = False
    counts_tokens: bool = True
    delegated: bool = False


@dataclass
class SummaryRequest:
    """Request handed to a backend by the orchestrator."""

    prompt: str
    system_prompt: Optional[str] = None
    history: Sequence[Message] = field(default_factory=tuple)
    response_length: int = 0
    skip_wian: bool = False


class SummaryBackend(ABC):
    """Contract: implement ``generate`` and ``context_budget``."""

    name: str = "backend"
    capabilities: BackendCapabilities = BackendCapabilities()

    def is_available(self) -> bool:
        """Return False when the backend is not configured on this host."""
        return True

    @abstractmethod
    async def context_budget(self, override_response_length: int = 0) -> int:
        """Return the maximum request size in this backend's units."""
        raise NotImplementedError

    @abstractmethod
    async def generate(self, request: SummaryRequest) -> str:
        """Return generated text, or raise ``BackendError``."""
        raise NotImplementedError

    def chat_messages(self, request: SummaryRequest) -> List[dict[str, str]]:
        """Render a request into OpenAI-style chat messages."""
        if self.capabilities.split_roles and request.system_prompt:
            return [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.prompt},
            ]
        return [{"role": "user", "content": request.prompt}]
