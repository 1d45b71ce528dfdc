"""The merchant registry: orders, activity and connections behind one contract.

This is the only component allowed to mutate relay state.  Every method is
synchronous and never awaits, so when driven from the asyncio event loop each
call is atomic with respect to concurrent syncs, connection events and reaper
ticks.  Pushing to connections is left to the caller, which works on the
snapshots returned here after the mutation has completed.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from orderrelay.models import Order
from orderrelay.state.activity import ActivityTracker
from orderrelay.state.connections import ConnectionRegistry, PushConnection
from orderrelay.state.orders import OrderStore


@dataclass(frozen=True, slots=True)
class Eviction:
    """A merchant removed by :meth:`MerchantRegistry.reap`.

    ``connections`` is the snapshot of viewers that should be told to clear.
    """

    merchant_id: str
    connections: frozenset[PushConnection]


class MerchantRegistry:
    """In-memory registry shared by the HTTP, WebSocket and reaper paths."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._orders = OrderStore()
        self._activity = ActivityTracker()
        self._connections = ConnectionRegistry()

    @property
    def orders(self) -> OrderStore:
        return self._orders

    @property
    def activity(self) -> ActivityTracker:
        return self._activity

    @property
    def connections(self) -> ConnectionRegistry:
        return self._connections

    def now(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Device sync
    # ------------------------------------------------------------------

    def sync(
        self,
        merchant_id: str,
        device_id: str,
        orders: Iterable[Order],
        *,
        now: float | None = None,
    ) -> list[Order]:
        """Replace the device batch and record activity.  Returns the merged view.

        Activity is only touched once the batch is stored, so a rejected batch
        leaves no trace.
        """
        view = self._orders.upsert_device_batch(merchant_id, device_id, orders)
        self._activity.touch(merchant_id, self._clock() if now is None else now)
        return view

    def merged_view(self, merchant_id: str) -> list[Order]:
        return self._orders.merged_view(merchant_id)

    def device_batches(self, merchant_id: str) -> dict[str, list[Order]]:
        return self._orders.device_batches(merchant_id)

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------

    def register(self, merchant_id: str, connection: PushConnection) -> list[Order]:
        """Bind *connection* to the merchant and return the snapshot to push."""
        self._connections.register(merchant_id, connection)
        return self._orders.merged_view(merchant_id)

    def unregister(self, connection: PushConnection) -> list[str]:
        return self._connections.unregister(connection)

    def connections_for(self, merchant_id: str) -> frozenset[PushConnection]:
        return self._connections.connections_for(merchant_id)

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    def reap(self, threshold: float, *, now: float | None = None) -> list[Eviction]:
        """Evict every merchant idle for at least *threshold* seconds.

        Orders and activity are dropped together; connections stay registered
        so they can receive the cleared view.
        """
        current = self._clock() if now is None else now
        evicted: list[Eviction] = []
        for merchant_id in self._activity.merchant_ids():
            if not self._activity.is_stale(merchant_id, current, threshold):
                continue
            self._orders.evict(merchant_id)
            self._activity.forget(merchant_id)
            evicted.append(Eviction(merchant_id, self._connections.connections_for(merchant_id)))
        return evicted

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def merchant_count(self) -> int:
        return len(self._orders.merchant_ids())

    @property
    def connection_count(self) -> int:
        return len(self._connections)
