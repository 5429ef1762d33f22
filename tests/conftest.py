"""Shared fixtures for the unit tests."""

from typing import Callable, List

import pytest

from charsheet.configs import Settings
from charsheet.models.history_models import Message
from charsheet.services.host import InMemoryChatHost
from tests.fakes import WordMeasurer, build_chat


@pytest.fixture
def measurer() -> WordMeasurer:
    return WordMeasurer()


@pytest.fixture
def host() -> InMemoryChatHost:
    return InMemoryChatHost()


@pytest.fixture
def make_chat() -> Callable[..., List[Message]]:
    return build_chat


@pytest.fixture
def config() -> Settings:
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="test-key",
        MAX_CONTEXT_SIZE=100,
        DEFAULT_RESPONSE_LENGTH=20,
        PROMPT_PADDING=0,
        SAVE_DEBOUNCE_SECONDS=0,
        LOCAL_CONTEXT_SIZE=4096,
        EXTRAS_API_URL="http://extras.local/",
        EXTRAS_CONTEXT_SIZE=10,
        REDIS_HOST=None,
    )
