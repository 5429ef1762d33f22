"""Decide whether a character sheet update should run now."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from charsheet.engine.checkpoint import HistorySnapshot
from charsheet.engine.errors import QuiescenceTimeout, SkipReason
from charsheet.engine.prompt_loader import render_template
from charsheet.models.history_models import Message
from charsheet.models.settings_models import TriggerPolicy
from charsheet.services.host import ChatHost

logger = logging.getLogger(__name__)

WORD = re.compile(r"[^\W_]+", re.UNICODE)

Sleep = Callable[[float], Awaitable[None]]


def extract_words(text: str) -> list[str]:
    return WORD.findall(text or "")


def count_words(text: str) -> int:
    return len(extract_words(text))


@dataclass(frozen=True)
class QuiescenceConfig:
    """Polling bounds for the wait before a cycle starts."""

    group_interval: float = 1.0
    group_attempts: int = 10
    send_interval: float = 0.03
    send_attempts: int = 100


@dataclass(frozen=True)
class TriggerDecision:
    """Go/no-go of one evaluation; ``prompt`` is set only when firing."""

    prompt: Optional[str] = None
    reason: Optional[SkipReason] = None
    snapshot: Optional[HistorySnapshot] = None
    messages_since: int = 0
    words_since: int = 0

    @property
    def fired(self) -> bool:
        return self.prompt is not None


async def wait_until(
    condition: Callable[[], bool],
    interval: float,
    attempts: int,
    name: str,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """Poll ``condition`` up to ``attempts`` times, ``interval`` seconds apart."""
    for _ in range(attempts):
        if condition():
            return
        await sleep(interval)
    if not condition():
        raise QuiescenceTimeout(name, attempts)


class TriggerEvaluator:
    """Trigger policy over the live history."""

    def __init__(
        self,
        host: ChatHost,
        quiescence: Optional[QuiescenceConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.host = host
        self.quiescence = quiescence or QuiescenceConfig()
        self._sleep = sleep

    async def wait_for_quiescence(self) -> None:
        """Wait for group generation, then for the send button to be released."""
        config = self.quiescence
        if self.host.is_group_chat():
            logger.debug("Waiting for group generation to finish...")
            await wait_until(
                lambda: not self.host.is_group_generating(),
                config.group_interval,
                config.group_attempts,
                "group generation",
                self._sleep,
            )
        logger.debug("Waiting for send press to be released...")
        await wait_until(
            lambda: not self.host.is_send_pressed(),
            config.send_interval,
            config.send_attempts,
            "send press",
            self._sleep,
        )

    async def should_trigger(
        self, history: Sequence[Message], policy: TriggerPolicy, force: bool
    ) -> TriggerDecision:
        """Return the rendered update prompt, or a skip with its reason."""
        if policy.message_interval == 0 and not force:
            logger.debug("Trigger check: interval is 0 and not forced, skipping")
            return TriggerDecision(reason=SkipReason.POLICY_NOOP)

        try:
            await self.wait_for_quiescence()
        except QuiescenceTimeout as exc:
            logger.debug("Wait condition failed, skipping update: %s", exc)
            return TriggerDecision(reason=SkipReason.QUIESCENCE_TIMEOUT)

        snapshot = HistorySnapshot.capture(history)
        if not len(snapshot):
            logger.debug("No messages in chat, skipping")
            return TriggerDecision(reason=SkipReason.POLICY_NOOP, snapshot=snapshot)

        if len(snapshot) < policy.min_history_length and not force:
            logger.debug(
                "History length %d below minimum %d, skipping",
                len(snapshot),
                policy.min_history_length,
            )
            return TriggerDecision(reason=SkipReason.POLICY_NOOP, snapshot=snapshot)

        messages_since, words_since = self._count_since_checkpoint(snapshot)
        logger.debug(
            "Messages since last update: %d, words: %d", messages_since, words_since
        )

        satisfied = messages_since >= policy.message_interval or (
            policy.force_word_threshold > 0
            and words_since >= policy.force_word_threshold
        )
        if not satisfied and not force:
            logger.debug("Trigger conditions not met (message count and word count)")
            return TriggerDecision(
                reason=SkipReason.POLICY_NOOP,
                snapshot=snapshot,
                messages_since=messages_since,
                words_since=words_since,
            )

        prompt = render_template(policy.prompt, words=policy.target_words)
        if not prompt.strip():
            logger.debug("Rendered prompt is empty, skipping")
            return TriggerDecision(reason=SkipReason.POLICY_NOOP, snapshot=snapshot)

        logger.info(
            "Updating character sheet. Messages since last update: %d, words: %d",
            messages_since,
            words_since,
        )
        return TriggerDecision(
            prompt=prompt,
            snapshot=snapshot,
            messages_since=messages_since,
            words_since=words_since,
        )

    @staticmethod
    def _count_since_checkpoint(snapshot: HistorySnapshot) -> tuple[int, int]:
        """Walk back from the newest message up to the first checkpointed one."""
        messages = 0
        words = 0
        for message in reversed(snapshot.messages):
            if message.summary:
                break
            messages += 1
            words += count_words(message.text)
        return messages, words
