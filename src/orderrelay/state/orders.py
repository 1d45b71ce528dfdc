"""Per-merchant, per-device order batches and the merged merchant view."""

from __future__ import annotations

import copy
import math
from collections.abc import Iterable
from typing import Any

from orderrelay.models import Order

_CREATED_TIME_KEY = "createdTime"


def _created_time(order: Order) -> float | None:
    """Return the order's numeric ``createdTime`` or ``None`` if unusable.

    Numeric strings are accepted because some POS builds serialize epoch
    millis as text.  Booleans are not timestamps.
    """
    value = order.get(_CREATED_TIME_KEY)
    if value is None or isinstance(value, bool):
        return None
    try:
        ts = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(ts):
        return None
    return ts


def _sort_key(order: Order) -> tuple[int, float]:
    ts = _created_time(order)
    if ts is None:
        # Untimed orders go last and keep their relative order.
        return (1, 0.0)
    return (0, ts)


def sort_batch(orders: Iterable[Order]) -> list[Order]:
    """Stable ascending sort by ``createdTime``; ties keep input order."""
    return sorted(orders, key=_sort_key)


class OrderStore:
    """Merchant → device → sorted batch.

    Each device sync replaces that device's batch wholesale.  The merged view
    concatenates batches in the order devices first synced; it is not
    re-sorted across devices.  All reads return deep copies.
    """

    def __init__(self) -> None:
        self._merchants: dict[str, dict[str, list[Order]]] = {}

    def upsert_device_batch(self, merchant_id: str, device_id: str, orders: Iterable[Order]) -> list[Order]:
        """Replace the batch for (merchant, device) and return the merged view."""
        batch = sort_batch(copy.deepcopy(list(orders)))
        devices = self._merchants.setdefault(merchant_id, {})
        devices[device_id] = batch
        return self.merged_view(merchant_id)

    def merged_view(self, merchant_id: str) -> list[Order]:
        """Flattened orders across all device batches; empty if unknown."""
        devices = self._merchants.get(merchant_id)
        if devices is None:
            return []
        return [copy.deepcopy(order) for batch in devices.values() for order in batch]

    def device_batches(self, merchant_id: str) -> dict[str, list[Order]]:
        devices = self._merchants.get(merchant_id)
        if devices is None:
            return {}
        return copy.deepcopy(devices)

    def evict(self, merchant_id: str) -> bool:
        """Remove every batch of the merchant.  Returns whether it existed."""
        return self._merchants.pop(merchant_id, None) is not None

    def merchant_ids(self) -> list[str]:
        return list(self._merchants)

    def __contains__(self, merchant_id: Any) -> bool:
        return merchant_id in self._merchants
