"""Run one update cycle: evaluate, assemble, dispatch, persist."""

from __future__ import annotations

from typing import Callable, Optional, Sequence, Tuple

from charsheet.backends.base import SummaryBackend, SummaryRequest
from charsheet.engine.assembler import (
    NO_PREVIOUS_SUMMARY,
    PADDING,
    BoundedPromptAssembler,
)
from charsheet.engine.checkpoint import HistorySnapshot
from charsheet.engine.errors import (
    BackendError,
    DelegatedSummaryError,
    SkipReason,
    UpdateResult,
)
from charsheet.engine.prompt_loader import render_template
from charsheet.engine.state import EngineState
from charsheet.engine.trigger import TriggerDecision, TriggerEvaluator
from charsheet.logger_config import get_logger
from charsheet.models.history_models import Message
from charsheet.models.settings_models import SheetSettings
from charsheet.services.debounce import Debouncer
from charsheet.services.host import ChatHost, ConversationIdentity
from charsheet.services.measurement import (
    CharacterMeasurer,
    TextMeasurer,
    TiktokenMeasurer,
)

logger = get_logger("charsheet.orchestrator")

NO_WINDOW_TITLE = "No messages found to update from"
NO_WINDOW_HINT = "Remove the latest character sheet to try again"
DIALOGUE_IN_CONTEXT = "(The conversation above)"


class UpdateOrchestrator:
    """Owns the in-flight guard and the persistence of generated sheets.

    At most one cycle holds the guard from window assembly until its backend
    call returns. A result is persisted only if the active conversation is
    still the one the cycle started on.
    """

    def __init__(
        self,
        host: ChatHost,
        state: EngineState,
        evaluator: TriggerEvaluator,
        saver: Debouncer,
        token_measurer: Optional[TextMeasurer] = None,
        proxy_measurer: Optional[TextMeasurer] = None,
        padding: int = PADDING,
        publish: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.host = host
        self.state = state
        self.evaluator = evaluator
        self.saver = saver
        self.token_measurer = token_measurer or TiktokenMeasurer()
        self.proxy_measurer = proxy_measurer or CharacterMeasurer()
        self.padding = padding
        self.publish = publish

    def assembler_for(self, backend: SummaryBackend) -> BoundedPromptAssembler:
        measurer = (
            self.token_measurer
            if backend.capabilities.counts_tokens
            else self.proxy_measurer
        )
        return BoundedPromptAssembler(measurer, self.padding)

    async def run_update(
        self, settings: SheetSettings, backend: SummaryBackend, force: bool
    ) -> UpdateResult:
        """Run one cycle against ``backend``; never raises for backend failures."""
        if not backend.is_available():
            logger.debug("Backend %s is not available, skipping", backend.name)
            return UpdateResult.skipped(SkipReason.UNAVAILABLE)

        identity = self.host.conversation_identity()
        decision = await self.evaluator.should_trigger(
            self.host.get_chat(), settings.trigger_policy(), force
        )
        if not decision.fired:
            return UpdateResult.skipped(decision.reason or SkipReason.POLICY_NOOP)

        logger.debug(
            "Dispatching to %s (%s)", backend.name, backend.capabilities
        )
        if backend.capabilities.delegated:
            return await self._run_delegated(settings, backend, decision, identity)
        if backend.capabilities.raw_window:
            return await self._run_windowed(settings, backend, decision, identity, force)
        return await self._run_templated(settings, backend, decision, identity)

    async def _run_templated(
        self,
        settings: SheetSettings,
        backend: SummaryBackend,
        decision: TriggerDecision,
        identity: ConversationIdentity,
    ) -> UpdateResult:
        snapshot = decision.snapshot or HistorySnapshot.capture(self.host.get_chat())
        checkpoint = snapshot.checkpoint()
        # The dialogue travels as chat turns that the backend trims to fit.
        prompt = render_template(
            decision.prompt or "",
            previous_summary=checkpoint.content if checkpoint else NO_PREVIOUS_SUMMARY,
            new_content=DIALOGUE_IN_CONTEXT,
        )
        request = SummaryRequest(
            prompt=prompt,
            history=snapshot.excluding_last(),
            response_length=settings.override_response_length,
            skip_wian=settings.skip_wian,
        )

        if not self.state.try_acquire():
            return UpdateResult.skipped(SkipReason.IN_FLIGHT)
        with self.state.guarded():
            outcome = await self._dispatch(backend, request)

        return self._finish(outcome, identity, snapshot, None)

    async def _run_windowed(
        self,
        settings: SheetSettings,
        backend: SummaryBackend,
        decision: TriggerDecision,
        identity: ConversationIdentity,
        force: bool,
    ) -> UpdateResult:
        snapshot = decision.snapshot or HistorySnapshot.capture(self.host.get_chat())
        budget = await backend.context_budget(settings.override_response_length)
        blocking = backend.capabilities.blocks_input

        if not self.state.try_acquire():
            return UpdateResult.skipped(SkipReason.IN_FLIGHT)
        with self.state.guarded():
            if blocking:
                self.host.set_send_enabled(False)
            try:
                assembled = await self.assembler_for(backend).assemble(
                    snapshot,
                    decision.prompt or "",
                    budget,
                    settings.max_messages_per_request,
                )
                if assembled.last_included_index is None:
                    logger.debug("No message fits the budget of %d", budget)
                    if force:
                        self.host.notify("info", NO_WINDOW_HINT, NO_WINDOW_TITLE)
                    return UpdateResult.skipped(SkipReason.NO_WINDOW)

                split = backend.capabilities.split_roles and bool(assembled.body)
                request = SummaryRequest(
                    prompt=assembled.body if split else assembled.payload,
                    system_prompt=assembled.system_prompt if split else None,
                    response_length=settings.override_response_length,
                    skip_wian=settings.skip_wian,
                )
                outcome = await self._dispatch(backend, request)
            finally:
                if blocking:
                    self.host.set_send_enabled(True)

        return self._finish(outcome, identity, snapshot, assembled.last_included_index)

    async def _run_delegated(
        self,
        settings: SheetSettings,
        backend: SummaryBackend,
        decision: TriggerDecision,
        identity: ConversationIdentity,
    ) -> UpdateResult:
        snapshot = decision.snapshot or HistorySnapshot.capture(self.host.get_chat())
        budget = await backend.context_budget(settings.override_response_length)

        if not self.state.try_acquire():
            return UpdateResult.skipped(SkipReason.IN_FLIGHT)
        with self.state.guarded():
            text = await self.assembler_for(backend).accumulate_until_budget(
                snapshot, budget
            )
            if not text:
                return UpdateResult.skipped(SkipReason.NO_WINDOW)
            outcome = await self._dispatch(backend, SummaryRequest(prompt=text))

        # The service rewrites the whole sheet, so it lands on the default target.
        return self._finish(outcome, identity, snapshot, None)

    async def _dispatch(
        self, backend: SummaryBackend, request: SummaryRequest
    ) -> Tuple[Optional[str], SkipReason]:
        """Call the backend; a failure yields no text and its skip reason."""
        try:
            return await backend.generate(request), SkipReason.BACKEND_FAILURE
        except DelegatedSummaryError as exc:
            logger.error("Summarize service rejected the request: %s", exc.message)
            return None, SkipReason.DELEGATED_REJECTED
        except BackendError as exc:
            logger.error("Backend %s failed: %s", exc.backend, exc.message)
        except Exception:
            logger.exception("Unexpected error in backend %s", backend.name)
        return None, SkipReason.BACKEND_FAILURE

    def _finish(
        self,
        outcome: Tuple[Optional[str], SkipReason],
        identity: ConversationIdentity,
        snapshot: HistorySnapshot,
        index: Optional[int],
    ) -> UpdateResult:
        result, failure = outcome
        if result is None:
            return UpdateResult.skipped(failure)
        if not result.strip():
            logger.warning("Empty character sheet received")
            return UpdateResult.skipped(SkipReason.EMPTY_RESULT)
        if not identity.same_as(self.host.conversation_identity()):
            logger.debug("Context changed, character sheet update discarded")
            return UpdateResult.skipped(SkipReason.STALE_CONTEXT)

        self.write_checkpoint(snapshot.messages, result, index)
        return UpdateResult(summary=result)

    def write_checkpoint(
        self, history: Sequence[Message], value: str, index: Optional[int] = None
    ) -> None:
        """Store ``value`` on the target message and schedule a save.

        The target defaults to the message before the newest one.
        """
        if self.publish is not None:
            self.publish(value)
        if not history:
            logger.debug("No chat messages, character sheet not persisted")
            return

        target = index if index is not None else len(history) - 2
        target = min(max(target, 0), len(history) - 1)
        history[target].set_summary(value)
        logger.info(
            "Character sheet saved to message at index %d (%d chars)", target, len(value)
        )
        self.saver.trigger()
