"""Main API backends over an OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, cast

from openai import AsyncOpenAI, OpenAIError

from charsheet.backends.base import (
    BackendCapabilities,
    SummaryBackend,
    SummaryRequest,
    strip_reasoning,
)
from charsheet.configs import Settings, settings as default_settings
from charsheet.engine.errors import BackendError
from charsheet.services.measurement import TextMeasurer, TiktokenMeasurer

logger = logging.getLogger(__name__)

OPEN_ROUTER_URL = "https://openrouter.ai/api/v1"


def build_client(config: Settings) -> AsyncOpenAI:
    """Create the async client, routing through OpenRouter when enabled."""
    if config.USE_OPEN_ROUTER:
        return AsyncOpenAI(api_key=config.OPENAI_API_KEY, base_url=OPEN_ROUTER_URL)
    return AsyncOpenAI(api_key=config.OPENAI_API_KEY, base_url=config.OPENAI_BASE_URL)


class OpenAIChatBackend(SummaryBackend):
    """Shared plumbing of the main API backends."""

    name = "openai"

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.config = config or default_settings
        self.model = self.config.OPENAI_MODEL
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = build_client(self.config)
        return self._client

    def is_available(self) -> bool:
        return bool(self.config.OPENAI_API_KEY or self.config.OPENAI_BASE_URL)

    async def context_budget(self, override_response_length: int = 0) -> int:
        response_length = override_response_length or self.config.DEFAULT_RESPONSE_LENGTH
        return self.config.MAX_CONTEXT_SIZE - response_length

    async def _complete(self, messages: List[Dict[str, Any]], max_tokens: int) -> str:
        """Call chat completions and normalize the output to a string."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=cast(Any, messages),
                max_tokens=max_tokens or self.config.DEFAULT_RESPONSE_LENGTH,
            )
        except OpenAIError as exc:
            raise BackendError(self.name, f"Chat completion failed: {exc}") from exc
        return (response.choices[0].message.content or "").strip()


class QuietPromptBackend(OpenAIChatBackend):
    """Templated backend: sends the chat itself plus the update instruction.

    No window is assembled upstream; the backend drops the oldest messages
    until the conversation fits its own context.
    """

    name = "quiet"
    capabilities = BackendCapabilities(raw_window=False)

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
        measurer: Optional[TextMeasurer] = None,
    ) -> None:
        super().__init__(config, client)
        self.measurer = measurer or TiktokenMeasurer(self.config.TOKENIZER_MODEL)

    async def _conversation(self, request: SummaryRequest) -> List[Dict[str, Any]]:
        history = [
            {"role": "user" if m.is_user else "assistant", "content": m.text}
            for m in request.history
            if m.is_summarizable
        ]
        budget = await self.context_budget(request.response_length)
        limit = budget - await self.measurer.measure(
            request.prompt, self.config.PROMPT_PADDING
        )

        sizes = [await self.measurer.measure(m["content"]) for m in history]
        size = sum(sizes)
        while history and size > limit:
            history.pop(0)
            size -= sizes.pop(0)
        logger.debug("Quiet prompt keeps %d history messages (%d tokens)", len(history), size)
        return history

    async def generate(self, request: SummaryRequest) -> str:
        messages = await self._conversation(request)
        messages.append({"role": "user", "content": request.prompt})
        return await self._complete(messages, request.response_length)


class RawPromptBackend(OpenAIChatBackend):
    """Raw backend: sends the assembled flattened payload as one message."""

    def __init__(
        self,
        blocking: bool,
        config: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        super().__init__(config, client)
        self.name = "raw_blocking" if blocking else "raw_non_blocking"
        self.capabilities = BackendCapabilities(raw_window=True, blocks_input=blocking)

    async def generate(self, request: SummaryRequest) -> str:
        result = await self._complete(self.chat_messages(request), request.response_length)
        return strip_reasoning(result)
