"""Test backend selection."""

from unittest.mock import MagicMock

from charsheet.backends.local_backend import LocalChatBackend
from charsheet.backends.registry import BackendRegistry
from charsheet.models.settings_models import PromptBuilder, SheetSettings, SummarySource


class TestBackendRegistry:
    """Test cases for BackendRegistry.resolve."""

    def setup_method(self) -> None:
        self.registry = BackendRegistry(
            quiet=MagicMock(name="quiet"),
            raw_blocking=MagicMock(name="raw_blocking"),
            raw_non_blocking=MagicMock(name="raw_non_blocking"),
            local=MagicMock(name="local"),
            delegated=MagicMock(name="delegated"),
        )

    def test_main_source_follows_prompt_builder(self) -> None:
        settings = SheetSettings()
        assert self.registry.resolve(settings) is self.registry.quiet

        settings.prompt_builder = PromptBuilder.RAW_BLOCKING
        assert self.registry.resolve(settings) is self.registry.raw_blocking

        settings.prompt_builder = PromptBuilder.RAW_NON_BLOCKING
        assert self.registry.resolve(settings) is self.registry.raw_non_blocking

    def test_other_sources_ignore_prompt_builder(self) -> None:
        settings = SheetSettings(
            source=SummarySource.LOCAL, prompt_builder=PromptBuilder.RAW_BLOCKING
        )
        assert self.registry.resolve(settings) is self.registry.local

        settings.source = SummarySource.EXTRAS
        assert self.registry.resolve(settings) is self.registry.delegated

    def test_from_settings_builds_every_kind(self, config) -> None:
        registry = BackendRegistry.from_settings(config)

        assert isinstance(registry.local, LocalChatBackend)
        assert registry.raw_blocking.capabilities.blocks_input is True
        assert registry.delegated.capabilities.delegated is True
