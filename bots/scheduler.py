"""Periodic refresh built on discord.ext.tasks."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from discord.ext import tasks

log = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[None]]


class PeriodicRefresher:
    """Run ``callback`` every ``minutes``; a failing tick is logged and skipped.

    ``tasks.loop`` never overlaps iterations, so refresh ticks are serialized.
    """

    def __init__(
        self,
        name: str,
        callback: RefreshCallback,
        *,
        minutes: float = 15,
        before_start: RefreshCallback | None = None,
    ) -> None:
        self.name = name
        self._callback = callback
        self._before_start = before_start
        self.minutes = minutes
        self.failures = 0
        self._loop = tasks.loop(minutes=minutes)(self._tick)
        self._loop.before_loop(self._wait_before_start)

    async def _wait_before_start(self) -> None:
        if self._before_start is not None:
            await self._before_start()

    async def _tick(self) -> None:
        try:
            await self._callback()
        except Exception:  # pylint: disable=broad-except
            self.failures += 1
            log.exception("%s refresh failed", self.name)

    async def run_once(self) -> None:
        await self._tick()

    @property
    def running(self) -> bool:
        return self._loop.is_running()

    def start(self) -> None:
        if self._loop.is_running():
            return
        log.info("Starting %s refresh every %s minutes", self.name, self.minutes)
        self._loop.start()

    def stop(self) -> None:
        if self._loop.is_running():
            self._loop.cancel()
            log.info("Stopped %s refresh", self.name)


__all__ = ["PeriodicRefresher", "RefreshCallback"]
