"""Fire-and-forget push of merchant views to live connections."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable

import aiohttp

from orderrelay._api.push import encode_orders_push
from orderrelay.exceptions import RelayDeliveryError
from orderrelay.models import Order
from orderrelay.state.connections import PushConnection
from orderrelay.state.registry import MerchantRegistry

_logger = logging.getLogger(__name__)


class FanoutEngine:
    """Push a merchant's view to every connection registered for it.

    Deliveries run concurrently and each is bounded by ``send_timeout``.
    Connections already closed are skipped; their own close handler
    unregisters them.  Failures are logged and never retried or raised.
    """

    def __init__(self, registry: MerchantRegistry, *, send_timeout: float = 5.0) -> None:
        self._registry = registry
        self._send_timeout = send_timeout

    async def broadcast(
        self,
        merchant_id: str,
        view: list[Order],
        *,
        connections: Iterable[PushConnection] | None = None,
        guard: Callable[[], bool] | None = None,
    ) -> int:
        """Push *view* to the merchant's connections.

        ``connections`` overrides the registry lookup; the reaper passes the
        snapshot taken at eviction time.  When ``guard`` is given it is checked
        right before each send and a false result drops that delivery.
        Returns the number of successful deliveries.
        """
        targets = list(self._registry.connections_for(merchant_id) if connections is None else connections)
        if not targets:
            return 0

        payload = encode_orders_push(view)
        results = await asyncio.gather(*(self._deliver(merchant_id, conn, payload, guard) for conn in targets))
        delivered = sum(results)
        _logger.debug(
            "Broadcast %d orders for merchant %s to %d/%d connections",
            len(view),
            merchant_id,
            delivered,
            len(targets),
        )
        return delivered

    async def send_snapshot(self, merchant_id: str, connection: PushConnection, view: list[Order]) -> bool:
        """Push *view* to a single connection (registration snapshot)."""
        return await self._deliver(merchant_id, connection, encode_orders_push(view))

    async def _deliver(
        self,
        merchant_id: str,
        connection: PushConnection,
        payload: str,
        guard: Callable[[], bool] | None = None,
    ) -> bool:
        if connection.closed:
            return False
        if guard is not None and not guard():
            _logger.debug("Dropped outdated push for merchant %s", merchant_id)
            return False
        try:
            await self._send(merchant_id, connection, payload)
        except RelayDeliveryError as exc:
            _logger.warning("Push to merchant %s connection failed: %s", merchant_id, exc)
            return False
        return True

    async def _send(self, merchant_id: str, connection: PushConnection, payload: str) -> None:
        try:
            await asyncio.wait_for(connection.send_str(payload), self._send_timeout)
        except TimeoutError as exc:
            raise RelayDeliveryError(
                f"send timed out after {self._send_timeout:g}s",
                merchant_id=merchant_id,
            ) from exc
        except (ConnectionError, RuntimeError, aiohttp.ClientError) as exc:
            raise RelayDeliveryError(f"{type(exc).__name__}: {exc}", merchant_id=merchant_id) from exc
