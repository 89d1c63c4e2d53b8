"""
Application service: the single periodic task driving the relay.

Calls BroadcastDispatcher.dispatch_tick() once per TICK_INTERVAL_SECONDS and
reaps connections whose sends failed.  Ticks never overlap: the next one is
scheduled only after the previous fan-out returned.
"""

import asyncio
import logging
from typing import Optional

from stock_relay.application.services.broadcast_dispatcher import BroadcastDispatcher
from stock_relay.application.services.connection_lifecycle import ConnectionLifecycleManager

logger = logging.getLogger(__name__)

TICK_INTERVAL_SECONDS = 1.0


class PriceTicker:
    def __init__(
        self,
        dispatcher: BroadcastDispatcher,
        lifecycle: ConnectionLifecycleManager,
        interval: float = TICK_INTERVAL_SECONDS,
    ) -> None:
        self._dispatcher = dispatcher
        self._lifecycle = lifecycle
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="price-ticker")
        logger.info("Price ticker started (interval %.3fs)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Price ticker stopped after %d ticks", self.ticks)

    async def run_once(self) -> None:
        try:
            report = await self._dispatcher.dispatch_tick()
            logger.debug(
                "Tick %d: sent=%d skipped=%d failed=%d",
                self.ticks, report.sent, report.skipped, report.failed,
            )
        except Exception:
            logger.exception("Tick %d failed", self.ticks)
        finally:
            self.ticks += 1

        reaped = await self._lifecycle.reap_unreachable()
        if reaped:
            logger.info("Reaped %d unreachable connection(s)", reaped)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval
        while True:
            await asyncio.sleep(max(0.0, next_tick - loop.time()))
            await self.run_once()
            next_tick += self._interval
            # fell behind (slow fan-out); resume the fixed cadence from now
            if next_tick < loop.time():
                next_tick = loop.time() + self._interval
