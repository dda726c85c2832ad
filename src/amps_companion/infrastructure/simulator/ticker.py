"""Background task that drives autonomous track progression."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from amps_companion.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[bool]]


class ProgressionTicker:
    """Calls ``on_tick`` once per ``interval`` until it reports nothing is left to play.

    ``on_tick`` returns True while at least one session is still progressing.
    The loop exits on its own once it returns False, so the owner only needs
    to ``start()`` again when something becomes playable.
    """

    def __init__(self, on_tick: TickCallback, *, interval: float) -> None:
        self._on_tick = on_tick
        self._interval = interval
        self._running = False
        self._task: asyncio.Task[None] | None = None

    def start(self) -> None:
        if self.is_running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.debug(LogTemplates.SIM_TICKER_STARTED, self._interval)

    async def stop(self) -> None:
        self._running = False

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.debug(LogTemplates.SIM_TICKER_STOPPED)

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self._interval)
            except asyncio.CancelledError:
                break

            try:
                still_playing = await self._on_tick()
            except Exception:
                logger.exception(LogTemplates.SIM_TICK_FAILED)
                continue

            if not still_playing:
                break

        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running and self._task is not None and not self._task.done()

    @property
    def interval(self) -> float:
        return self._interval
