"""Chain a sibling summarizer behind this engine while lock mode is on."""

from __future__ import annotations

from typing import Awaitable, Callable, Optional

from charsheet.engine.errors import UpdateResult
from charsheet.logger_config import get_logger
from charsheet.models.settings_models import SheetSettings
from charsheet.services.host import ChatHost, SiblingSummarizer

logger = get_logger("charsheet.lock_mode")

LOCK_ON_TITLE = "Lock Mode Active"
LOCK_ON_MESSAGE = (
    "Memory extension has been frozen. Character Sheet extension will handle both updates"
)
LOCK_OFF_TITLE = "Lock Mode Disabled"
LOCK_OFF_MESSAGE = "Memory extension has been unfrozen. It can now update independently"


class LockModeCoordinator:
    """Suspend the sibling's own triggering and run it after our updates.

    ``sibling`` is optional; without one every operation only concerns this
    engine's flag.
    """

    def __init__(
        self,
        settings: Callable[[], SheetSettings],
        host: ChatHost,
        sibling: Optional[SiblingSummarizer] = None,
    ) -> None:
        self._settings = settings
        self.host = host
        self.sibling = sibling

    @property
    def enabled(self) -> bool:
        return self._settings().lock_mode

    def set_lock(self, enabled: bool, notify: bool = True) -> bool:
        """Apply lock mode; return True if the sibling's flag actually changed."""
        self._settings().lock_mode = enabled
        if self.sibling is None:
            return False

        changed = self.sibling.suspended != enabled
        self.sibling.suspended = enabled
        logger.info("Lock mode %s, sibling suspended=%s", enabled, enabled)

        if changed and notify:
            if enabled:
                self.host.notify("info", LOCK_ON_MESSAGE, LOCK_ON_TITLE)
            else:
                self.host.notify("success", LOCK_OFF_MESSAGE, LOCK_OFF_TITLE)
        return changed

    async def after_update(self, result: UpdateResult) -> None:
        """Run the sibling's forced update after a successful cycle of ours."""
        if not self.enabled or self.sibling is None or not result.ok:
            return
        logger.info("Lock mode: triggering sibling update")
        try:
            await self.sibling.force_update(True)
        except Exception as exc:
            logger.warning("Lock mode: sibling update failed: %s", exc)

    async def sync(
        self, update: Callable[[], Awaitable[UpdateResult]]
    ) -> UpdateResult:
        """Run ``update`` then the sibling's forced update, exactly once each.

        Both flags are cleared for the duration and restored afterwards, also
        when either update raises.
        """
        settings = self._settings()
        was_locked = settings.lock_mode
        was_suspended = self.sibling.suspended if self.sibling is not None else False
        logger.debug(
            "Sync: lock_mode=%s, sibling suspended=%s", was_locked, was_suspended
        )

        settings.lock_mode = False
        if self.sibling is not None:
            self.sibling.suspended = False
        try:
            result = await update()
            logger.info(
                "Sync: character sheet update %s",
                "succeeded" if result.ok else "failed",
            )
            if self.sibling is not None:
                try:
                    await self.sibling.force_update(True)
                except Exception as exc:
                    logger.warning("Sync: sibling update failed: %s", exc)
            return result
        finally:
            self._settings().lock_mode = was_locked
            if self.sibling is not None:
                self.sibling.suspended = was_suspended
            logger.debug("Sync: restored lock_mode=%s", was_locked)
