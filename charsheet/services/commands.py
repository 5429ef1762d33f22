"""Command surface: maps literal actions onto engine operations."""

from __future__ import annotations

from charsheet.logger_config import get_logger
from charsheet.models.command_models import SheetAction, SheetCommand
from charsheet.services.sheet_service import CharacterSheetService

logger = get_logger("charsheet.commands")

FROZEN_STATUS = "Character sheet is frozen. Use /sheet update to force update"
ACTIVE_STATUS = "Character sheet is active. Use /sheet update to force update"
EDIT_USAGE = "Provide the new character sheet text to edit it"


async def execute(service: CharacterSheetService, command: SheetCommand) -> str:
    """Run ``command`` and return its one-line textual result."""
    action = command.action
    text = (command.text or "").strip()
    logger.info("Command received: %s", action.value)

    if action is SheetAction.UPDATE:
        if service.settings.lock_mode:
            await service.sync()
        else:
            await service.force_update(command.quiet)
        return ""

    if action is SheetAction.SYNC:
        await service.sync()
        return ""

    if action is SheetAction.FREEZE:
        service.settings.frozen = True
        service.save_settings()
        return "Character sheet updates frozen"

    if action is SheetAction.UNFREEZE:
        service.settings.frozen = False
        service.save_settings()
        return "Character sheet updates unfrozen"

    if action is SheetAction.LOCK:
        service.lock.set_lock(True, notify=not command.quiet)
        service.save_settings()
        return "Lock mode enabled. Memory extension will be frozen."

    if action is SheetAction.UNLOCK:
        service.lock.set_lock(False, notify=not command.quiet)
        service.save_settings()
        return "Lock mode disabled. Memory extension can now update independently."

    if action is SheetAction.GET:
        return service.get_current_summary()

    if action is SheetAction.EDIT:
        if not text:
            return EDIT_USAGE
        service.edit(text)
        return service.get_current_summary()

    return FROZEN_STATUS if service.settings.frozen else ACTIVE_STATUS
