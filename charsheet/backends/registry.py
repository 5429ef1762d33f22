"""Select the backend matching the configured source and prompt builder."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from charsheet.backends.base import SummaryBackend
from charsheet.backends.extras_backend import DelegatedSummaryBackend
from charsheet.backends.local_backend import LocalChatBackend
from charsheet.backends.openai_backend import QuietPromptBackend, RawPromptBackend
from charsheet.configs import Settings, settings as default_settings
from charsheet.models.settings_models import PromptBuilder, SheetSettings, SummarySource


@dataclass
class BackendRegistry:
    """One backend per kind."""

    quiet: SummaryBackend
    raw_blocking: SummaryBackend
    raw_non_blocking: SummaryBackend
    local: SummaryBackend
    delegated: SummaryBackend

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "BackendRegistry":
        config = config or default_settings
        return cls(
            quiet=QuietPromptBackend(config),
            raw_blocking=RawPromptBackend(blocking=True, config=config),
            raw_non_blocking=RawPromptBackend(blocking=False, config=config),
            local=LocalChatBackend(config),
            delegated=DelegatedSummaryBackend(config),
        )

    def resolve(self, sheet_settings: SheetSettings) -> SummaryBackend:
        if sheet_settings.source == SummarySource.EXTRAS:
            return self.delegated
        if sheet_settings.source == SummarySource.LOCAL:
            return self.local
        if sheet_settings.prompt_builder == PromptBuilder.RAW_BLOCKING:
            return self.raw_blocking
        if sheet_settings.prompt_builder == PromptBuilder.RAW_NON_BLOCKING:
            return self.raw_non_blocking
        return self.quiet
