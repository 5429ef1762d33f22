"""Test the trigger evaluator and the quiescence wait."""

import asyncio
from typing import List

from charsheet.engine.errors import SkipReason
from charsheet.engine.trigger import (
    QuiescenceConfig,
    TriggerEvaluator,
    count_words,
)
from charsheet.models.settings_models import TriggerPolicy
from charsheet.services.host import ConversationIdentity, InMemoryChatHost
from tests.fakes import build_chat, no_sleep

FIFTEEN_WORDS = " ".join(["word"] * 15)


def make_policy(**overrides) -> TriggerPolicy:
    values = dict(
        message_interval=10,
        force_word_threshold=0,
        min_history_length=10,
        target_words=300,
        prompt="Update the sheet in {{words}} words.",
    )
    values.update(overrides)
    return TriggerPolicy(**values)


class TestShouldTrigger:
    """Test cases for TriggerEvaluator.should_trigger."""

    def setup_method(self) -> None:
        self.host = InMemoryChatHost()
        self.evaluator = TriggerEvaluator(self.host, sleep=no_sleep)

    def evaluate(self, chat, policy, force=False):
        return asyncio.run(self.evaluator.should_trigger(chat, policy, force))

    def test_fires_after_interval_without_checkpoint(self) -> None:
        decision = self.evaluate(build_chat(12), make_policy())

        assert decision.fired
        assert decision.prompt == "Update the sheet in 300 words."
        assert decision.messages_since == 12
        assert len(decision.snapshot) == 12

    def test_skips_when_interval_not_met_since_checkpoint(self) -> None:
        chat = build_chat(10, checkpoints={5: "Sheet"})

        decision = self.evaluate(chat, make_policy())

        assert not decision.fired
        assert decision.reason is SkipReason.POLICY_NOOP
        assert decision.messages_since == 4

    def test_word_threshold_fires_before_interval(self) -> None:
        chat = build_chat(10, checkpoints={5: "Sheet"})
        for message in chat[6:]:
            message.text = FIFTEEN_WORDS

        decision = self.evaluate(chat, make_policy(force_word_threshold=50))

        assert decision.fired
        assert decision.messages_since == 4
        assert decision.words_since == 60

    def test_zero_interval_disables_automatic_trigger(self) -> None:
        decision = self.evaluate(build_chat(20), make_policy(message_interval=0))

        assert decision.reason is SkipReason.POLICY_NOOP

    def test_force_bypasses_interval_and_minimum_length(self) -> None:
        decision = self.evaluate(
            build_chat(2), make_policy(message_interval=0), force=True
        )

        assert decision.fired

    def test_skips_empty_history_even_when_forced(self) -> None:
        decision = self.evaluate([], make_policy(), force=True)

        assert decision.reason is SkipReason.POLICY_NOOP

    def test_skips_below_minimum_history_length(self) -> None:
        decision = self.evaluate(build_chat(6), make_policy(message_interval=2))

        assert decision.reason is SkipReason.POLICY_NOOP

    def test_empty_rendered_prompt_skips(self) -> None:
        decision = self.evaluate(build_chat(12), make_policy(prompt="  "))

        assert decision.reason is SkipReason.POLICY_NOOP

    def test_send_press_timeout_skips(self) -> None:
        sleeps: List[float] = []

        async def sleep(interval: float) -> None:
            sleeps.append(interval)

        self.host.send_pressed = True
        evaluator = TriggerEvaluator(
            self.host, QuiescenceConfig(send_interval=0.5, send_attempts=3), sleep
        )

        decision = asyncio.run(
            evaluator.should_trigger(build_chat(12), make_policy(), False)
        )

        assert decision.reason is SkipReason.QUIESCENCE_TIMEOUT
        assert sleeps == [0.5, 0.5, 0.5]


class TestWaitForQuiescence:
    """Test cases for the group generation wait."""

    def test_waits_for_group_generation_to_finish(self) -> None:
        host = InMemoryChatHost(identity=ConversationIdentity(chat_id="c", group_id="g"))
        host.group_generating = True
        calls: List[float] = []

        async def sleep(interval: float) -> None:
            calls.append(interval)
            if len(calls) == 2:
                host.group_generating = False

        evaluator = TriggerEvaluator(host, QuiescenceConfig(group_interval=1.0), sleep)
        asyncio.run(evaluator.wait_for_quiescence())

        assert calls == [1.0, 1.0]

    def test_group_generation_is_ignored_outside_groups(self) -> None:
        host = InMemoryChatHost()
        host.group_generating = True

        evaluator = TriggerEvaluator(host, sleep=no_sleep)
        asyncio.run(evaluator.wait_for_quiescence())


def test_count_words_ignores_punctuation() -> None:
    assert count_words("Hello, world! It's 2 o'clock_now.") == 8
