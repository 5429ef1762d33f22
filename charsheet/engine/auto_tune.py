"""Advisory recommendations for the trigger interval and word threshold.

Both calculators look at the whole visible history, measure its
tokens-per-word ratio and work out how many average messages fit in one
request next to the prompt and the expected sheet. They are only run on
demand and never from the live trigger path.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import List, Sequence

from charsheet.engine.errors import SheetUpdateError
from charsheet.engine.trigger import count_words
from charsheet.logger_config import get_logger
from charsheet.models.history_models import Message
from charsheet.models.settings_models import SheetSettings
from charsheet.services.measurement import TextMeasurer

logger = get_logger("charsheet.auto_tune")

INTERVAL_ROUNDING = 5
WORDS_ROUNDING = 100


class NotEnoughHistory(SheetUpdateError):
    """Raised when the history has no words to derive statistics from."""


@dataclass(frozen=True)
class IntervalRecommendation:
    max_prompt_length: int
    prompt_allowance: int
    target_summary_tokens: int
    prompt_tokens: int
    messages_word_count: int
    messages_token_count: int
    tokens_per_word: float
    average_message_token_count: float
    average_messages_per_prompt: int
    target_messages_in_prompt: int
    adjusted_average_messages_per_prompt: float
    interval: int


@dataclass(frozen=True)
class ForceWordsRecommendation:
    max_prompt_length: int
    max_prompt_length_words: int
    prompt_allowance_words: int
    average_messages_per_prompt: int
    target_messages_in_prompt: int
    target_summary_words: float
    words_per_token: float
    tokens_per_word: float
    messages_word_count: int
    force_words: int


def _round_down(value: float, step: int) -> int:
    return max(1, math.floor(value / step) * step)


def _visible_texts(history: Sequence[Message]) -> List[str]:
    texts = [m.text for m in history if m.is_summarizable]
    if not texts or not sum(count_words(t) for t in texts):
        raise NotEnoughHistory("History has no words to measure")
    return texts


def _log_table(recommendation: object) -> None:
    for key, value in asdict(recommendation).items():
        logger.debug("  %-38s %s", key, value)


async def recommend_interval(
    history: Sequence[Message],
    settings: SheetSettings,
    budget: int,
    measurer: TextMeasurer,
) -> IntervalRecommendation:
    """Recommend ``prompt_interval``, rounded down to a multiple of 5."""
    texts = _visible_texts(history)
    word_count = sum(count_words(t) for t in texts)
    token_count = await measurer.measure("\n".join(texts))
    tokens_per_word = token_count / word_count
    average_tokens = token_count / len(texts)

    target_summary_tokens = round(settings.prompt_words * tokens_per_word)
    prompt_tokens = await measurer.measure(settings.prompt)
    allowance = budget - prompt_tokens - target_summary_tokens

    average_messages = math.floor(allowance / average_tokens)
    cap = settings.max_messages_per_request
    target_messages = cap if cap > 0 else max(0, average_messages)
    adjusted = target_messages + (average_messages - target_messages) / 4

    recommendation = IntervalRecommendation(
        max_prompt_length=budget,
        prompt_allowance=allowance,
        target_summary_tokens=target_summary_tokens,
        prompt_tokens=prompt_tokens,
        messages_word_count=word_count,
        messages_token_count=token_count,
        tokens_per_word=tokens_per_word,
        average_message_token_count=average_tokens,
        average_messages_per_prompt=average_messages,
        target_messages_in_prompt=target_messages,
        adjusted_average_messages_per_prompt=adjusted,
        interval=_round_down(adjusted, INTERVAL_ROUNDING),
    )
    logger.debug("Interval recommendation:")
    _log_table(recommendation)
    return recommendation


async def recommend_force_words(
    history: Sequence[Message],
    settings: SheetSettings,
    budget: int,
    measurer: TextMeasurer,
) -> ForceWordsRecommendation:
    """Recommend ``prompt_force_words``, rounded down to a multiple of 100."""
    texts = _visible_texts(history)
    word_count = sum(count_words(t) for t in texts)
    average_words = word_count / len(texts)
    tokens_per_word = await measurer.measure("\n".join(texts)) / word_count
    words_per_token = 1 / tokens_per_word

    max_prompt_words = round(budget * words_per_token)
    prompt_words = count_words(settings.prompt)
    allowance_words = max_prompt_words - settings.prompt_words - prompt_words

    average_messages = math.floor(allowance_words / average_words)
    cap = settings.max_messages_per_request
    target_messages = cap if cap > 0 else max(0, average_messages)
    target_words = target_messages * average_words + allowance_words / 4

    recommendation = ForceWordsRecommendation(
        max_prompt_length=budget,
        max_prompt_length_words=max_prompt_words,
        prompt_allowance_words=allowance_words,
        average_messages_per_prompt=average_messages,
        target_messages_in_prompt=target_messages,
        target_summary_words=target_words,
        words_per_token=words_per_token,
        tokens_per_word=tokens_per_word,
        messages_word_count=word_count,
        force_words=_round_down(target_words, WORDS_ROUNDING),
    )
    logger.debug("Force words recommendation:")
    _log_table(recommendation)
    return recommendation
