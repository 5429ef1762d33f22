"""Public facade of the character sheet engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from charsheet.backends.registry import BackendRegistry
from charsheet.configs import Settings, settings as default_config
from charsheet.engine.auto_tune import (
    ForceWordsRecommendation,
    IntervalRecommendation,
    recommend_force_words,
    recommend_interval,
)
from charsheet.engine.checkpoint import HistorySnapshot, latest_summary
from charsheet.engine.errors import SkipReason, UpdateResult
from charsheet.engine.lock_mode import LockModeCoordinator
from charsheet.engine.orchestrator import UpdateOrchestrator
from charsheet.engine.prompt_loader import render_template
from charsheet.engine.state import EngineState
from charsheet.engine.trigger import QuiescenceConfig, TriggerEvaluator
from charsheet.logger_config import get_logger
from charsheet.models.settings_models import SheetSettings
from charsheet.repositories.redis.redis_settings_store import create_settings_store
from charsheet.repositories.settings_store import InMemorySettingsStore, SettingsStore
from charsheet.services.debounce import Debouncer
from charsheet.services.host import (
    ChatHost,
    EventSource,
    HostEvent,
    InMemoryChatHost,
    LocalEventSource,
    SiblingSummarizer,
)
from charsheet.services.measurement import (
    CharacterMeasurer,
    TextMeasurer,
    TiktokenMeasurer,
)

logger = get_logger("charsheet.sheet_service")

MODULE_NAME = "character_sheet"
FAILED_UPDATE = "Failed to update character sheet"


def format_sheet(value: Optional[str], template: str) -> str:
    """Format the sheet for injection into the host context."""
    if not value:
        return ""
    value = value.strip()
    if template:
        return render_template(template, sheet=value)
    return f"Character Sheet: {value}"


class CharacterSheetService:
    """Keeps a rolling character sheet checkpointed inside the chat history.

    Subscribes to host events for the automatic path and exposes the manual
    operations used by the command surface.
    """

    def __init__(
        self,
        host: ChatHost,
        sheet_settings: Optional[SheetSettings] = None,
        registry: Optional[BackendRegistry] = None,
        sibling: Optional[SiblingSummarizer] = None,
        settings_store: Optional[SettingsStore] = None,
        config: Optional[Settings] = None,
        evaluator: Optional[TriggerEvaluator] = None,
        token_measurer: Optional[TextMeasurer] = None,
    ) -> None:
        self.host = host
        self.config = config or default_config
        self.settings_store = settings_store or InMemorySettingsStore()
        self.settings = sheet_settings or self.settings_store.load()
        self.registry = registry or BackendRegistry.from_settings(self.config)
        self.state = EngineState()
        self.current_sheet = ""
        self.evaluator = evaluator or TriggerEvaluator(
            host,
            QuiescenceConfig(
                group_interval=self.config.GROUP_POLL_INTERVAL,
                group_attempts=self.config.GROUP_POLL_ATTEMPTS,
                send_interval=self.config.SEND_POLL_INTERVAL,
                send_attempts=self.config.SEND_POLL_ATTEMPTS,
            ),
        )
        self.token_measurer = token_measurer or TiktokenMeasurer(
            self.config.TOKENIZER_MODEL
        )
        self.saver = Debouncer(host.save_chat, self.config.SAVE_DEBOUNCE_SECONDS)
        self.orchestrator = UpdateOrchestrator(
            host,
            self.state,
            self.evaluator,
            self.saver,
            token_measurer=self.token_measurer,
            proxy_measurer=CharacterMeasurer(),
            padding=self.config.PROMPT_PADDING,
            publish=lambda value: self.set_sheet_context(value),
        )
        self.lock = LockModeCoordinator(lambda: self.settings, host, sibling)

    def attach(self, events: EventSource) -> None:
        """Subscribe the live path and the chat switch handler."""
        for event in (
            HostEvent.MESSAGE_RENDERED,
            HostEvent.MESSAGE_DELETED,
            HostEvent.MESSAGE_UPDATED,
            HostEvent.MESSAGE_SWIPED,
        ):
            events.on(event, self.on_chat_event)
        events.on(HostEvent.CHAT_CHANGED, self.on_chat_changed)

    async def on_chat_event(self) -> None:
        try:
            await self.update()
        except Exception:
            logger.exception("Character sheet update failed")

    async def on_chat_changed(self) -> None:
        self.set_sheet_context(latest_summary(self.host.get_chat()))

    async def update(self) -> UpdateResult:
        """Automatic update cycle driven by host events."""
        if not self.settings.enabled:
            logger.debug("Extension is disabled, skipping update")
            return UpdateResult.skipped(SkipReason.DISABLED)
        if self.host.is_streaming():
            logger.debug("Streaming not finished, skipping")
            return UpdateResult.skipped(SkipReason.STREAMING)
        if self.state.in_flight:
            logger.debug("Update already in flight, skipping")
            return UpdateResult.skipped(SkipReason.IN_FLIGHT)
        if self.settings.frozen:
            logger.debug("Character sheet is frozen, skipping")
            return UpdateResult.skipped(SkipReason.FROZEN)

        chat = self.host.get_chat()
        if not chat or self.state.is_unchanged(chat):
            logger.debug("No new messages to process (hash unchanged or empty chat)")
            return UpdateResult.skipped(SkipReason.UNCHANGED)

        if self.state.was_truncated(chat):
            logger.debug(
                "Messages deleted (%s -> %d), restoring sheet",
                self.state.fingerprint.last_seen_length,
                len(chat),
            )
            self.set_sheet_context(latest_summary(chat))

        newest = chat[-1]
        if newest.summary and self.state.was_edited(chat):
            logger.debug("Message edited, removing stale character sheet reference")
            newest.clear_summary()

        result = UpdateResult.skipped(SkipReason.POLICY_NOOP)
        try:
            backend = self.registry.resolve(self.settings)
            logger.info("Starting update. Source: %s", self.settings.source.value)
            result = await self.orchestrator.run_update(self.settings, backend, False)
            await self.lock.after_update(result)
        finally:
            self.state.record(self.host.get_chat())
            logger.debug(
                "Update finished. Last seen length: %s",
                self.state.fingerprint.last_seen_length,
            )
        return result

    async def force_update(self, quiet: bool = False) -> UpdateResult:
        """Run one cycle now, ignoring interval, threshold and freeze."""
        if not quiet:
            self.host.notify("info", "Updating character sheet...", "Please wait")

        backend = self.registry.resolve(self.settings)
        result = await self.orchestrator.run_update(self.settings, backend, True)
        if not result.ok:
            self.host.notify("warning", FAILED_UPDATE)
        return result

    async def sync(self) -> UpdateResult:
        """Update this sheet and the sibling's artifact once each."""
        self.host.notify("info", "Updating character sheet and memory...", "Please wait")
        try:
            result = await self.lock.sync(lambda: self.force_update(True))
        except Exception as exc:
            logger.exception("Sync failed")
            self.host.notify("error", str(exc), "Sync Failed")
            return UpdateResult.skipped(SkipReason.BACKEND_FAILURE)
        self.host.notify("success", "Both updates completed", "Sync Result")
        return result

    def get_current_summary(self) -> str:
        return self.current_sheet

    def set_sheet_context(self, value: Optional[str]) -> None:
        """Inject ``value`` into the host context and make it the current sheet."""
        self.current_sheet = value or ""
        self.host.set_extension_prompt(
            MODULE_NAME,
            format_sheet(value, self.settings.template),
            self.settings.position,
            self.settings.depth,
            self.settings.scan,
            self.settings.role,
        )
        if value:
            logger.debug(
                "Character Sheet set. Position: %s. Depth: %s. Role: %s",
                self.settings.position.name,
                self.settings.depth,
                self.settings.role.name,
            )
        else:
            logger.debug("Character Sheet is empty")

    def edit(self, text: str) -> None:
        """Replace the current sheet with user text and persist it."""
        self.orchestrator.write_checkpoint(self.host.get_chat(), text)

    def restore(self) -> str:
        """Drop the current sheet's checkpoint and fall back to the previous one."""
        chat = self.host.get_chat()
        content = self.current_sheet
        for message in reversed(HistorySnapshot.capture(chat).excluding_last()):
            if message.summary == content:
                message.clear_summary()
                break

        previous = latest_summary(chat)
        self.set_sheet_context(previous)
        return previous

    def save_settings(self) -> None:
        self.settings_store.save(self.settings)

    async def _budget(self) -> int:
        backend = self.registry.resolve(self.settings)
        return await backend.context_budget(self.settings.override_response_length)

    async def recommend_interval(self, apply: bool = False) -> IntervalRecommendation:
        recommendation = await recommend_interval(
            self.host.get_chat(), self.settings, await self._budget(), self.token_measurer
        )
        if apply:
            self.settings.prompt_interval = recommendation.interval
            self.save_settings()
        return recommendation

    async def recommend_force_words(
        self, apply: bool = False
    ) -> ForceWordsRecommendation:
        recommendation = await recommend_force_words(
            self.host.get_chat(), self.settings, await self._budget(), self.token_measurer
        )
        if apply:
            self.settings.prompt_force_words = recommendation.force_words
            self.save_settings()
        return recommendation


@lru_cache
def get_event_source() -> LocalEventSource:
    """Return the process-wide event source of the in-process chat."""
    return LocalEventSource()


@lru_cache
def get_sheet_service() -> CharacterSheetService:
    """Return the process-wide service bound to the in-process chat host."""
    service = CharacterSheetService(
        InMemoryChatHost(), settings_store=create_settings_store()
    )
    service.attach(get_event_source())
    service.set_sheet_context(latest_summary(service.host.get_chat()))
    return service
