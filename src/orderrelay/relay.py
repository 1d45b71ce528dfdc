"""High-level async facade over the merchant registry, fan-out and reaper."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from orderrelay._api.push import parse_client_message
from orderrelay._api.sync import parse_sync_request
from orderrelay.config import RelayConfig
from orderrelay.exceptions import RelayParseError
from orderrelay.fanout import FanoutEngine
from orderrelay.models import Order
from orderrelay.reaper import ReaperLoop
from orderrelay.state.connections import PushConnection
from orderrelay.state.registry import MerchantRegistry

_logger = logging.getLogger(__name__)


class OrderRelay:
    """Relay order batches from POS devices to merchant dashboards.

    Usage::

        async with OrderRelay(config) as relay:
            view = await relay.sync_orders(body)

    Entering the context starts the eviction loop; leaving it stops it.
    Transport adapters (see :mod:`orderrelay.server`) call
    :meth:`sync_orders`, :meth:`handle_message` and :meth:`disconnect`.
    """

    def __init__(
        self,
        config: RelayConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or RelayConfig()
        self._registry = MerchantRegistry(clock=clock)
        self._fanout = FanoutEngine(self._registry, send_timeout=self._config.send_timeout)
        self._reaper = ReaperLoop(
            self._registry,
            self._fanout,
            stale_after=self._config.stale_after,
            interval=self._config.reap_interval,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> OrderRelay:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        self._reaper.start()

    async def stop(self) -> None:
        await self._reaper.stop()

    @property
    def config(self) -> RelayConfig:
        return self._config

    @property
    def registry(self) -> MerchantRegistry:
        return self._registry

    @property
    def reaper(self) -> ReaperLoop:
        return self._reaper

    # ------------------------------------------------------------------
    # Device sync
    # ------------------------------------------------------------------

    async def sync_orders(self, body: Any) -> list[Order]:
        """Apply a device sync and broadcast the new merged view.

        Raises
        ------
        RelayValidationError
            The body is rejected; nothing is recorded or broadcast.
        """
        request = parse_sync_request(body)
        _logger.info(
            "Received %d orders from merchant %s device %s",
            len(request.order_json_list),
            request.merchant_id,
            request.device_id,
        )
        view = self._registry.sync(request.merchant_id, request.device_id, request.order_json_list)
        await self._fanout.broadcast(request.merchant_id, view)
        return view

    def orders_for(self, merchant_id: str) -> list[Order]:
        return self._registry.merged_view(merchant_id)

    def orders_by_device(self, merchant_id: str) -> dict[str, list[Order]]:
        return self._registry.device_batches(merchant_id)

    # ------------------------------------------------------------------
    # Push channel
    # ------------------------------------------------------------------

    async def handle_message(self, connection: PushConnection, raw: str | bytes) -> bool:
        """Process one inbound frame.  Returns whether it registered the connection.

        Malformed and unrecognized frames are logged and ignored.
        """
        try:
            message = parse_client_message(raw)
        except RelayParseError as exc:
            _logger.warning("Ignoring malformed push message: %s", exc)
            return False
        if message is None:
            _logger.debug("Ignoring unrecognized push message")
            return False
        await self.register(message.merchant_id, connection)
        return True

    async def register(self, merchant_id: str, connection: PushConnection) -> list[Order]:
        """Bind *connection* to the merchant and push it the current snapshot."""
        previous = self._registry.connections.merchants_for(connection)
        snapshot = self._registry.register(merchant_id, connection)
        if previous - {merchant_id}:
            _logger.info(
                "Connection already registered for %s also registered for merchant %s",
                ", ".join(sorted(previous)),
                merchant_id,
            )
        else:
            _logger.info("Merchant registered with ID %s", merchant_id)
        await self._fanout.send_snapshot(merchant_id, connection, snapshot)
        return snapshot

    def disconnect(self, connection: PushConnection) -> list[str]:
        merchant_ids = self._registry.unregister(connection)
        if merchant_ids:
            _logger.debug("Connection removed from merchants %s", ", ".join(merchant_ids))
        return merchant_ids

    # ------------------------------------------------------------------
    # Eviction
    # ------------------------------------------------------------------

    async def reap(self, now: float | None = None) -> list[str]:
        """Run one eviction sweep immediately."""
        return await self._reaper.tick(now)
