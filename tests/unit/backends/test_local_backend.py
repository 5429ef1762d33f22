"""Test the local model backend."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from charsheet.backends.base import SummaryRequest
from charsheet.backends.local_backend import LocalChatBackend
from charsheet.engine.errors import BackendError


def make_client(content: str) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response)
    return client


class TestLocalChatBackend:
    """Test cases for LocalChatBackend."""

    def test_sends_system_user_pair_without_cap(self, config) -> None:
        client = make_client("<think>x</think>Sheet")
        backend = LocalChatBackend(config, client)

        result = asyncio.run(
            backend.generate(SummaryRequest("Dialogue", system_prompt="Summarize."))
        )

        assert result == "Sheet"
        kwargs = client.chat.completions.create.await_args.kwargs
        assert "max_tokens" not in kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "Summarize."},
            {"role": "user", "content": "Dialogue"},
        ]

    def test_caps_response_when_override_is_set(self, config) -> None:
        client = make_client("Sheet")
        backend = LocalChatBackend(config, client)

        asyncio.run(backend.generate(SummaryRequest("Dialogue", response_length=128)))

        assert client.chat.completions.create.await_args.kwargs["max_tokens"] == 128

    def test_context_budget(self, config) -> None:
        backend = LocalChatBackend(config, MagicMock())

        assert asyncio.run(backend.context_budget()) == 3072
        assert asyncio.run(backend.context_budget(500)) == 3596

    def test_availability(self, config) -> None:
        assert LocalChatBackend(config).is_available() is False
        assert LocalChatBackend(config, MagicMock()).is_available() is True

        config.LOCAL_LLM_BASE_URL = "http://localhost:8080/v1"
        assert LocalChatBackend(config).is_available() is True

    def test_errors_are_wrapped(self, config) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=OpenAIError("offline"))

        with pytest.raises(BackendError):
            asyncio.run(LocalChatBackend(config, client).generate(SummaryRequest("x")))
