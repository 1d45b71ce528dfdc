"""Merchant → live push connection membership."""

from __future__ import annotations

from typing import Protocol


class PushConnection(Protocol):
    """Structural interface of a live push channel.

    aiohttp's ``WebSocketResponse`` satisfies it; tests pass lightweight
    doubles.  Connections are compared by identity, so implementations must
    be hashable.
    """

    @property
    def closed(self) -> bool: ...

    async def send_str(self, data: str) -> None: ...


class ConnectionRegistry:
    """Sets of open connections keyed by merchant id.

    A reverse index (connection → merchants) keeps :meth:`unregister` O(1) per
    membership.  A connection that registers under a second merchant stays in
    both sets until it closes.
    """

    def __init__(self) -> None:
        self._by_merchant: dict[str, set[PushConnection]] = {}
        self._by_connection: dict[PushConnection, set[str]] = {}

    def register(self, merchant_id: str, connection: PushConnection) -> bool:
        """Add *connection* to the merchant's set.

        Returns ``False`` when it was already registered for that merchant.
        """
        members = self._by_merchant.setdefault(merchant_id, set())
        if connection in members:
            return False
        members.add(connection)
        self._by_connection.setdefault(connection, set()).add(merchant_id)
        return True

    def unregister(self, connection: PushConnection) -> list[str]:
        """Drop *connection* from every merchant set that contains it.

        Empty merchant sets are removed.  Returns the affected merchant ids
        (empty if the connection never registered).
        """
        merchant_ids = self._by_connection.pop(connection, set())
        for merchant_id in merchant_ids:
            members = self._by_merchant.get(merchant_id)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del self._by_merchant[merchant_id]
        return sorted(merchant_ids)

    def connections_for(self, merchant_id: str) -> frozenset[PushConnection]:
        """Snapshot of the merchant's connections (possibly empty)."""
        return frozenset(self._by_merchant.get(merchant_id, ()))

    def merchants_for(self, connection: PushConnection) -> frozenset[str]:
        return frozenset(self._by_connection.get(connection, ()))

    def merchant_ids(self) -> list[str]:
        return list(self._by_merchant)

    def __len__(self) -> int:
        return len(self._by_connection)
