"""Debounced fire-and-forget persistence of the host history."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """Run ``action`` once, ``delay`` seconds after the last ``trigger`` call."""

    def __init__(self, action: Callable[[], Awaitable[None]], delay: float = 1.0) -> None:
        self.action = action
        self.delay = delay
        self._task: Optional[asyncio.Task[None]] = None

    def trigger(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    async def flush(self) -> None:
        """Run a pending action now instead of waiting for the delay."""
        if not self.pending:
            return
        assert self._task is not None
        self._task.cancel()
        self._task = None
        await self._invoke()

    async def _run(self) -> None:
        await asyncio.sleep(self.delay)
        await self._invoke()

    async def _invoke(self) -> None:
        try:
            await self.action()
        except Exception:
            logger.exception("Debounced save failed")
