"""Text measurement used to keep summarization requests inside the budget."""

from __future__ import annotations

from typing import Optional, Protocol

import tiktoken

CHARS_PER_TOKEN = 4


class TextMeasurer(Protocol):
    """Measure text in backend units (tokens or a proxy)."""

    async def measure(self, text: str, padding: int = 0) -> int:
        ...


class TiktokenMeasurer:
    """Count tokens with the encoding of the configured model."""

    def __init__(self, model: str = "gpt-4o-mini") -> None:
        self.model = model
        self._encoder: Optional[tiktoken.Encoding] = None

    @property
    def encoder(self) -> tiktoken.Encoding:
        if self._encoder is None:
            try:
                self._encoder = tiktoken.encoding_for_model(self.model)
            except KeyError:
                # Models unknown to tiktoken (local or routed ones).
                self._encoder = tiktoken.get_encoding("cl100k_base")
        return self._encoder

    async def measure(self, text: str, padding: int = 0) -> int:
        return len(self.encoder.encode(text or "")) + padding


class CharacterMeasurer:
    """Rough proxy for backends without a tokenizer: ~4 characters per token."""

    async def measure(self, text: str, padding: int = 0) -> int:
        return len(text or "") // CHARS_PER_TOKEN + padding
