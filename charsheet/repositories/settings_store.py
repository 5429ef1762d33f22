"""Persistence of the user-facing extension settings."""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol

from charsheet.models.settings_models import SheetSettings


class SettingsStore(Protocol):
    def load(self) -> SheetSettings:
        """Return stored settings, falling back to defaults for missing keys."""
        ...

    def save(self, settings: SheetSettings) -> None:
        ...


class InMemorySettingsStore:
    """Process-local store, used when no Redis server is configured."""

    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(data or {})

    def load(self) -> SheetSettings:
        return SheetSettings.model_validate(self.data)

    def save(self, settings: SheetSettings) -> None:
        self.data = settings.model_dump(mode="json")
