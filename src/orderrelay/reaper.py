"""Periodic eviction of merchants whose devices have gone quiet."""

from __future__ import annotations

import asyncio
import contextlib
import logging

from orderrelay.fanout import FanoutEngine
from orderrelay.state.registry import Eviction, MerchantRegistry

_logger = logging.getLogger(__name__)


class ReaperLoop:
    """Evict stale merchants every ``interval`` seconds.

    Each evicted merchant's viewers receive an empty view so their
    dashboards clear.  Merchants are cleared concurrently, and a merchant that
    syncs again before its clear goes out keeps its new view.  A failing tick is logged and the loop keeps running.
    """

    def __init__(
        self,
        registry: MerchantRegistry,
        fanout: FanoutEngine,
        *,
        stale_after: float,
        interval: float,
    ) -> None:
        self._registry = registry
        self._fanout = fanout
        self._stale_after = stale_after
        self._interval = interval
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self, now: float | None = None) -> list[str]:
        """Run one sweep.  Returns the evicted merchant ids."""
        evictions = self._registry.reap(self._stale_after, now=now)
        if evictions:
            await asyncio.gather(*(self._clear(eviction) for eviction in evictions))
        return [eviction.merchant_id for eviction in evictions]

    async def _clear(self, eviction: Eviction) -> None:
        merchant_id = eviction.merchant_id
        _logger.info("Evicting orders for inactive merchant %s", merchant_id)
        await self._fanout.broadcast(
            merchant_id,
            [],
            connections=eviction.connections,
            guard=lambda: merchant_id not in self._registry.orders,
        )

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name="orderrelay-reaper")
        _logger.info(
            "Reaper started (stale_after=%gs, interval=%gs)",
            self._stale_after,
            self._interval,
        )

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        _logger.info("Reaper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception:
                _logger.exception("Reaper tick failed")
