"""Request and response models for the command surface."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class SheetAction(str, Enum):
    """Literal actions accepted by the command surface."""

    UPDATE = "update"
    SYNC = "sync"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"
    LOCK = "lock"
    UNLOCK = "unlock"
    GET = "get"
    EDIT = "edit"
    STATUS = "status"


class SheetCommand(BaseModel):
    """Command issued by a user against the engine."""

    action: SheetAction = Field(
        default=SheetAction.UPDATE, description="Action to perform."
    )
    quiet: bool = Field(default=False, description="Suppress user notices.")
    text: Optional[str] = Field(
        default=None, description="New sheet content for the edit action."
    )


class SheetCommandResponse(BaseModel):
    """Result of a command."""

    action: SheetAction = Field(..., description="Action that was executed.")
    result: str = Field(..., description="Text returned by the action.")


class SheetContentResponse(BaseModel):
    """Current sheet in effect."""

    sheet: str = Field(..., description="Character sheet currently in effect.")


class IncomingMessage(BaseModel):
    """Message appended to the in-process chat."""

    speaker: str = Field(..., description="Name of the message author.")
    text: str = Field(default="", description="Message content.")
    is_user: bool = Field(default=False, description="Sent by the user.")
    is_system: bool = Field(default=False, description="System message.")
