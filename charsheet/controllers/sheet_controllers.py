"""Expose the character sheet commands over HTTP.

The router drives the in-process chat: appended messages fire the same
events a host would, and commands map onto the engine operations.
"""
from fastapi import APIRouter, status, Depends, HTTPException

from charsheet.logger_config import get_logger
from charsheet.models.command_models import (
    IncomingMessage,
    SheetCommand,
    SheetCommandResponse,
    SheetContentResponse,
)
from charsheet.models.history_models import Message
from charsheet.services.commands import execute
from charsheet.services.host import HostEvent, LocalEventSource
from charsheet.services.sheet_service import (
    CharacterSheetService,
    get_event_source,
    get_sheet_service,
)

logger = get_logger("charsheet.sheet_controllers")

sheet_router = APIRouter(prefix="/sheet", tags=["Character Sheet"])


@sheet_router.get(
    "",
    responses={
        200: {"model": SheetContentResponse, "description": "Successful Response"},
    },
)
def get_sheet(
    service: CharacterSheetService = Depends(get_sheet_service),
) -> SheetContentResponse:
    """Return the character sheet currently in effect."""
    return SheetContentResponse(sheet=service.get_current_summary())


@sheet_router.post(
    "/command",
    responses={
        200: {"model": SheetCommandResponse, "description": "Successful Response"},
    },
)
async def run_command(
    command: SheetCommand,
    service: CharacterSheetService = Depends(get_sheet_service),
) -> SheetCommandResponse:
    """
    Run one command against the engine.

    Args:
        command (SheetCommand): Action, quiet flag and optional text.

    Returns:
        SheetCommandResponse with the textual result of the action.
    """
    try:
        result = await execute(service, command)
        return SheetCommandResponse(action=command.action, result=result)
    except Exception as e:
        logger.exception("Command %s failed", command.action.value)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        )


@sheet_router.post(
    "/messages",
    responses={
        200: {"model": SheetContentResponse, "description": "Successful Response"},
    },
)
async def append_message(
    data: IncomingMessage,
    service: CharacterSheetService = Depends(get_sheet_service),
    events: LocalEventSource = Depends(get_event_source),
) -> SheetContentResponse:
    """Append a message to the chat and run the automatic update path."""
    service.host.get_chat().append(
        Message(
            speaker=data.speaker,
            text=data.text,
            is_user=data.is_user,
            is_system=data.is_system,
        )
    )
    await events.emit(HostEvent.MESSAGE_RENDERED)
    return SheetContentResponse(sheet=service.get_current_summary())
