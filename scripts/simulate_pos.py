#!/usr/bin/env python3
"""Drive a running relay with fake POS devices and a dashboard viewer.

Opens a push connection for the merchant, then has each simulated device
sync a random batch of orders every few seconds, printing every frame the
viewer receives.  Stop a device with ``--stop-after`` to watch the merchant
get evicted once it goes quiet.

Usage
-----
::

    python -m orderrelay &
    python scripts/simulate_pos.py --merchant m1 --devices 2

Options::

    --url URL            Relay base URL (default: http://127.0.0.1:8100)
    --merchant ID        Merchant id (default: demo-merchant)
    --devices N          Number of simulated devices (default: 2)
    --interval SECONDS   Seconds between syncs per device (default: 5)
    --stop-after N       Stop syncing after N rounds (default: run forever)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import sys
import time
from pathlib import Path
from typing import Any

import aiohttp

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from orderrelay.models import SyncOrdersRequest  # noqa: E402

_MENU = ["Burger", "Fries", "Cola", "Salad", "Shake", "Nuggets"]


def _random_batch(device_id: str) -> list[dict[str, Any]]:
    now_ms = int(time.time() * 1000)
    return [
        {
            "orderId": f"{device_id}-{random.randint(1000, 9999)}",
            "createdTime": now_ms - random.randint(0, 600_000),
            "items": random.sample(_MENU, k=random.randint(1, 3)),
        }
        for _ in range(random.randint(0, 4))
    ]


async def _viewer(session: aiohttp.ClientSession, url: str, merchant_id: str) -> None:
    async with session.ws_connect(url) as ws:
        await ws.send_json({"type": "register", "merchantId": merchant_id})
        async for msg in ws:
            if msg.type != aiohttp.WSMsgType.TEXT:
                continue
            elements = json.loads(msg.data).get("elements", [])
            print(f"[viewer] {len(elements)} orders: {[o.get('orderId') for o in elements]}")


async def _device(
    session: aiohttp.ClientSession,
    url: str,
    merchant_id: str,
    device_id: str,
    interval: float,
    stop_after: int | None,
) -> None:
    rounds = 0
    while stop_after is None or rounds < stop_after:
        request = SyncOrdersRequest(
            merchant_id=merchant_id,
            device_id=device_id,
            order_json_list=_random_batch(device_id),
        )
        async with session.post(url, json=request.to_wire()) as resp:
            body = await resp.json()
            print(f"[{device_id}] HTTP {resp.status}: merged view has {len(body.get('orders', []))} orders")
        rounds += 1
        await asyncio.sleep(interval)
    print(f"[{device_id}] stopped syncing")


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate POS devices against a running relay")
    parser.add_argument("--url", default="http://127.0.0.1:8100")
    parser.add_argument("--merchant", default="demo-merchant")
    parser.add_argument("--devices", type=int, default=2)
    parser.add_argument("--interval", type=float, default=5.0)
    parser.add_argument("--stop-after", type=int, default=None)
    return parser.parse_args()


async def _run(args: argparse.Namespace) -> int:
    base = args.url.rstrip("/")
    async with aiohttp.ClientSession() as session:
        viewer = asyncio.create_task(_viewer(session, f"{base}/ws", args.merchant))
        devices = [
            _device(session, f"{base}/api/sync-orders-bulk", args.merchant, f"pos-{n}", args.interval, args.stop_after)
            for n in range(1, args.devices + 1)
        ]
        try:
            await asyncio.gather(*devices)
            await viewer
        except aiohttp.ClientError as exc:
            print(f"Relay unreachable: {exc}", file=sys.stderr)
            return 1
        finally:
            viewer.cancel()
    return 0


def main() -> int:
    args = _parse_args()
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
