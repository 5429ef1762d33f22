"""Local backend talking to an in-process or on-host OpenAI-compatible server."""

from __future__ import annotations

from typing import Any, Dict, Optional, cast

from openai import AsyncOpenAI, OpenAIError

from charsheet.backends.base import (
    BackendCapabilities,
    SummaryBackend,
    SummaryRequest,
    strip_reasoning,
)
from charsheet.configs import Settings, settings as default_settings
from charsheet.engine.errors import BackendError

LOCAL_API_KEY = "not-needed"


class LocalChatBackend(SummaryBackend):
    """Send a system/user message pair to a local model.

    The response length is capped only when an override is configured.
    """

    name = "local"
    capabilities = BackendCapabilities(
        raw_window=True, split_roles=True, response_length_cap=True
    )

    def __init__(
        self,
        config: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.config = config or default_settings
        self.model = self.config.LOCAL_LLM_MODEL
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=LOCAL_API_KEY, base_url=self.config.LOCAL_LLM_BASE_URL
            )
        return self._client

    def is_available(self) -> bool:
        return self._client is not None or bool(self.config.LOCAL_LLM_BASE_URL)

    async def context_budget(self, override_response_length: int = 0) -> int:
        context_size = self.config.LOCAL_CONTEXT_SIZE
        if override_response_length > 0:
            return context_size - override_response_length
        return round(context_size * 0.75)

    async def generate(self, request: SummaryRequest) -> str:
        params: Dict[str, Any] = {}
        if request.response_length > 0:
            params["max_tokens"] = request.response_length
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=cast(Any, self.chat_messages(request)),
                **params,
            )
        except OpenAIError as exc:
            raise BackendError(self.name, f"Local model call failed: {exc}") from exc
        return strip_reasoning(response.choices[0].message.content or "")
