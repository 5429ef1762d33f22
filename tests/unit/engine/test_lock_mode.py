"""Test the lock mode coordinator."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from charsheet.engine.errors import SkipReason, UpdateResult
from charsheet.engine.lock_mode import LOCK_OFF_TITLE, LOCK_ON_TITLE, LockModeCoordinator
from charsheet.models.settings_models import SheetSettings
from charsheet.services.host import InMemoryChatHost


class FakeSibling:
    def __init__(self, suspended: bool = False, error: Exception = None) -> None:
        self.suspended = suspended
        self.force_update = AsyncMock(side_effect=error, return_value="Memory")


class TestLockModeCoordinator:
    """Test cases for LockModeCoordinator."""

    def setup_method(self) -> None:
        self.settings = SheetSettings()
        self.host = InMemoryChatHost()
        self.sibling = FakeSibling()
        self.coordinator = LockModeCoordinator(
            lambda: self.settings, self.host, self.sibling
        )

    def test_set_lock_notifies_only_on_change(self) -> None:
        assert self.coordinator.set_lock(True) is True
        assert self.coordinator.set_lock(True) is False

        assert self.settings.lock_mode is True
        assert self.sibling.suspended is True
        assert [notice[2] for notice in self.host.notices] == [LOCK_ON_TITLE]

        self.coordinator.set_lock(False)

        assert self.sibling.suspended is False
        assert self.host.notices[-1][2] == LOCK_OFF_TITLE

    def test_set_lock_without_sibling(self) -> None:
        coordinator = LockModeCoordinator(lambda: self.settings, self.host)

        assert coordinator.set_lock(True) is False
        assert self.settings.lock_mode is True
        assert self.host.notices == []

    def test_after_update_chains_sibling_on_success(self) -> None:
        self.settings.lock_mode = True

        asyncio.run(self.coordinator.after_update(UpdateResult(summary="Sheet")))

        self.sibling.force_update.assert_awaited_once_with(True)

    def test_after_update_skips_sibling_on_failure(self) -> None:
        self.settings.lock_mode = True

        asyncio.run(
            self.coordinator.after_update(UpdateResult.skipped(SkipReason.EMPTY_RESULT))
        )

        self.sibling.force_update.assert_not_awaited()

    def test_after_update_does_nothing_when_unlocked(self) -> None:
        asyncio.run(self.coordinator.after_update(UpdateResult(summary="Sheet")))

        self.sibling.force_update.assert_not_awaited()

    def test_after_update_contains_sibling_errors(self) -> None:
        self.settings.lock_mode = True
        self.sibling.force_update.side_effect = RuntimeError("sibling down")

        asyncio.run(self.coordinator.after_update(UpdateResult(summary="Sheet")))

    def test_sync_runs_both_once_and_restores_flags_when_sibling_fails(self) -> None:
        self.settings.lock_mode = True
        self.sibling.suspended = True
        self.sibling.force_update.side_effect = RuntimeError("sibling down")
        seen = []

        async def update() -> UpdateResult:
            seen.append((self.settings.lock_mode, self.sibling.suspended))
            return UpdateResult(summary="Sheet")

        result = asyncio.run(self.coordinator.sync(update))

        assert result.ok
        assert seen == [(False, False)]
        self.sibling.force_update.assert_awaited_once_with(True)
        assert self.settings.lock_mode is True
        assert self.sibling.suspended is True

    def test_sync_restores_flags_when_update_raises(self) -> None:
        self.settings.lock_mode = True
        self.sibling.suspended = True

        async def update() -> UpdateResult:
            raise RuntimeError("engine down")

        with pytest.raises(RuntimeError):
            asyncio.run(self.coordinator.sync(update))

        assert self.settings.lock_mode is True
        assert self.sibling.suspended is True
        self.sibling.force_update.assert_not_awaited()
