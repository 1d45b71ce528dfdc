from __future__ import annotations

import asyncio
import contextlib
import json
from collections.abc import AsyncIterator

import pytest
from aiohttp import test_utils

from orderrelay.config import RelayConfig
from orderrelay.relay import OrderRelay
from orderrelay.server import create_app

_SYNC = "/api/sync-orders-bulk"


@contextlib.asynccontextmanager
async def _serve(relay: OrderRelay | None = None) -> AsyncIterator[test_utils.TestClient]:
    # Long reap interval: tests drive eviction explicitly via relay.reap().
    relay = relay or OrderRelay(RelayConfig(reap_interval=3600.0))
    async with test_utils.TestClient(test_utils.TestServer(create_app(relay))) as client:
        yield client


@pytest.mark.asyncio
async def test_heartbeat() -> None:
    async with _serve() as client:
        resp = await client.get("/")

        assert resp.status == 200
        assert await resp.json() == {"success": True, "heartBeat": "healthy"}


@pytest.mark.asyncio
async def test_sync_then_read_merged_view() -> None:
    async with _serve() as client:
        resp = await client.post(
            _SYNC,
            json={"merchantId": "M", "deviceId": "D1", "orderJsonList": [{"createdTime": 5}, {"createdTime": 2}]},
        )
        assert resp.status == 200
        assert await resp.json() == {"success": True, "orders": [{"createdTime": 2}, {"createdTime": 5}]}

        resp = await client.post(_SYNC, json={"merchantId": "M", "deviceId": "D2", "orderJsonList": [{"createdTime": 10}]})
        assert (await resp.json())["orders"] == [{"createdTime": 2}, {"createdTime": 5}, {"createdTime": 10}]

        resp = await client.get("/api/orders/M")
        assert resp.status == 200
        assert await resp.json() == [{"createdTime": 2}, {"createdTime": 5}, {"createdTime": 10}]

        resp = await client.get("/api/orders/M", params={"groupBy": "device"})
        assert await resp.json() == {
            "D1": [{"createdTime": 2}, {"createdTime": 5}],
            "D2": [{"createdTime": 10}],
        }


@pytest.mark.asyncio
async def test_unknown_merchant_reads_empty() -> None:
    async with _serve() as client:
        assert await (await client.get("/api/orders/nobody")).json() == []
        assert await (await client.get("/api/orders/nobody?groupBy=device")).json() == {}


@pytest.mark.asyncio
async def test_unsupported_group_by_is_rejected() -> None:
    async with _serve() as client:
        resp = await client.get("/api/orders/M", params={"groupBy": "hour"})

        assert resp.status == 400
        assert "error" in await resp.json()


@pytest.mark.asyncio
async def test_sync_missing_device_id_is_rejected_without_mutation() -> None:
    async with _serve() as client:
        resp = await client.post(_SYNC, json={"merchantId": "M", "orderJsonList": [{"createdTime": 1}]})

        assert resp.status == 400
        assert await resp.json() == {"error": "merchantId and deviceId are required"}
        assert await (await client.get("/api/orders/M")).json() == []


@pytest.mark.asyncio
async def test_sync_with_invalid_json_body() -> None:
    async with _serve() as client:
        resp = await client.post(_SYNC, data="{not json", headers={"Content-Type": "application/json"})

        assert resp.status == 400
        assert await resp.json() == {"error": "request body must be a JSON object"}


@pytest.mark.asyncio
async def test_register_snapshot_then_live_broadcasts() -> None:
    async with _serve() as client:
        await client.post(_SYNC, json={"merchantId": "m1", "deviceId": "d1", "orderJsonList": [{"createdTime": 1}]})

        ws = await client.ws_connect("/")
        await ws.send_json({"type": "register", "merchantId": "m1"})
        assert await ws.receive_json(timeout=2) == {"elements": [{"createdTime": 1}]}

        await client.post(_SYNC, json={"merchantId": "m1", "deviceId": "d2", "orderJsonList": [{"createdTime": 0}]})
        assert await ws.receive_json(timeout=2) == {"elements": [{"createdTime": 1}, {"createdTime": 0}]}

        await ws.close()


@pytest.mark.asyncio
async def test_register_with_no_orders_gets_empty_snapshot() -> None:
    async with _serve() as client:
        ws = await client.ws_connect("/ws")
        await ws.send_json({"type": "register", "merchantId": "m1"})

        assert await ws.receive_json(timeout=2) == {"elements": []}
        await ws.close()


@pytest.mark.asyncio
async def test_malformed_message_keeps_channel_open() -> None:
    async with _serve() as client:
        ws = await client.ws_connect("/ws")
        await ws.send_str("definitely not json")
        await ws.send_json({"type": "hello"})
        await ws.send_json({"type": "register", "merchantId": "m1"})

        assert await ws.receive_json(timeout=2) == {"elements": []}
        assert not ws.closed
        await ws.close()


@pytest.mark.asyncio
async def test_eviction_clears_connected_viewers() -> None:
    now = [1_000.0]
    relay = OrderRelay(RelayConfig(stale_after=60.0, reap_interval=3600.0), clock=lambda: now[0])
    async with _serve(relay) as client:
        ws = await client.ws_connect("/")
        await ws.send_json({"type": "register", "merchantId": "m1"})
        await ws.receive_json(timeout=2)
        await client.post(_SYNC, json={"merchantId": "m1", "deviceId": "d1", "orderJsonList": [{"createdTime": 1}]})
        await ws.receive_json(timeout=2)

        now[0] += 60.0
        assert await relay.reap() == ["m1"]

        assert await ws.receive_json(timeout=2) == {"elements": []}
        assert await (await client.get("/api/orders/m1")).json() == []
        await ws.close()


@pytest.mark.asyncio
async def test_closed_connection_is_unregistered() -> None:
    relay = OrderRelay(RelayConfig(reap_interval=3600.0))
    async with _serve(relay) as client:
        ws = await client.ws_connect("/ws")
        await ws.send_json({"type": "register", "merchantId": "m1"})
        await ws.receive_json(timeout=2)
        assert relay.registry.connection_count == 1

        await ws.close()
        for _ in range(100):
            if relay.registry.connection_count == 0:
                break
            await asyncio.sleep(0.01)

        assert relay.registry.connection_count == 0
        assert relay.registry.connections.merchant_ids() == []


@pytest.mark.asyncio
async def test_non_finite_numbers_are_returned_as_null() -> None:
    body = '{"merchantId": "M", "deviceId": "D1", "orderJsonList": [{"createdTime": 1, "total": NaN}, {"createdTime": Infinity}]}'
    async with _serve() as client:
        resp = await client.post(_SYNC, data=body, headers={"Content-Type": "application/json"})
        assert resp.status == 200
        text = await resp.text()
        assert "NaN" not in text
        assert "Infinity" not in text
        assert json.loads(text)["orders"] == [{"createdTime": 1, "total": None}, {"createdTime": None}]

        resp = await client.get("/api/orders/M")
        assert await resp.json() == [{"createdTime": 1, "total": None}, {"createdTime": None}]
