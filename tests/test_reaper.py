from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import pytest

from orderrelay.fanout import FanoutEngine
from orderrelay.reaper import ReaperLoop
from orderrelay.state.registry import MerchantRegistry


def _reaper(registry: MerchantRegistry, *, interval: float = 3.0) -> ReaperLoop:
    return ReaperLoop(registry, FanoutEngine(registry), stale_after=60.0, interval=interval)


@pytest.mark.asyncio
async def test_tick_evicts_stale_merchant_and_pushes_empty_view(
    clock, make_connection: Callable[..., object]
) -> None:
    registry = MerchantRegistry(clock=clock)
    viewer = make_connection()
    registry.register("m1", viewer)
    registry.sync("m1", "d1", [{"createdTime": 1}])
    reaper = _reaper(registry)

    clock.advance(59)
    assert await reaper.tick() == []
    assert viewer.sent == []

    clock.advance(1)
    assert await reaper.tick() == ["m1"]
    assert json.loads(viewer.sent[-1]) == {"elements": []}
    assert registry.merged_view("m1") == []
    assert registry.activity.last_activity("m1") is None


@pytest.mark.asyncio
async def test_tick_ignores_merchants_that_never_synced(clock, make_connection: Callable[..., object]) -> None:
    registry = MerchantRegistry(clock=clock)
    viewer = make_connection()
    registry.register("m1", viewer)
    clock.advance(3600)

    assert await _reaper(registry).tick() == []
    assert viewer.sent == []


@pytest.mark.asyncio
async def test_loop_runs_periodically_and_stops(clock, make_connection: Callable[..., object]) -> None:
    registry = MerchantRegistry(clock=clock)
    viewer = make_connection()
    registry.register("m1", viewer)
    registry.sync("m1", "d1", [{"createdTime": 1}])
    clock.advance(120)
    reaper = _reaper(registry, interval=0.01)

    reaper.start()
    assert reaper.is_running
    for _ in range(50):
        if viewer.sent:
            break
        await asyncio.sleep(0.01)
    await reaper.stop()

    assert not reaper.is_running
    assert json.loads(viewer.sent[0]) == {"elements": []}


@pytest.mark.asyncio
async def test_loop_survives_failing_tick(clock, monkeypatch: pytest.MonkeyPatch) -> None:
    registry = MerchantRegistry(clock=clock)
    reaper = _reaper(registry, interval=0.01)
    calls = 0

    def flaky_reap(threshold: float, *, now: float | None = None) -> list:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return []

    monkeypatch.setattr(registry, "reap", flaky_reap)

    reaper.start()
    for _ in range(50):
        if calls >= 2:
            break
        await asyncio.sleep(0.01)
    still_running = reaper.is_running
    await reaper.stop()

    assert calls >= 2
    assert still_running


@pytest.mark.asyncio
async def test_resync_during_tick_keeps_new_view(clock, make_connection: Callable[..., object]) -> None:
    registry = MerchantRegistry(clock=clock)
    fanout = FanoutEngine(registry)
    reaper = ReaperLoop(registry, fanout, stale_after=60.0, interval=3.0)
    slow_viewer, viewer = make_connection(delay=0.05), make_connection()
    registry.register("w", slow_viewer)
    registry.register("x", viewer)
    registry.sync("w", "d1", [{"createdTime": 1}])
    registry.sync("x", "d1", [{"createdTime": 1}])
    clock.advance(60)

    tick = asyncio.create_task(reaper.tick())
    await asyncio.sleep(0)
    assert "x" not in registry.orders

    view = registry.sync("x", "d1", [{"createdTime": 2}])
    await fanout.broadcast("x", view)

    assert await tick == ["w", "x"]
    assert json.loads(viewer.sent[-1]) == {"elements": [{"createdTime": 2}]}
    assert registry.merged_view("x") == [{"createdTime": 2}]
    assert json.loads(slow_viewer.sent[-1]) == {"elements": []}


@pytest.mark.asyncio
async def test_slow_viewer_does_not_delay_other_evictions(clock, make_connection: Callable[..., object]) -> None:
    registry = MerchantRegistry(clock=clock)
    reaper = ReaperLoop(registry, FanoutEngine(registry, send_timeout=0.5), stale_after=60.0, interval=3.0)
    stuck, viewer = make_connection(delay=5.0), make_connection()
    registry.register("a", stuck)
    registry.register("b", viewer)
    registry.sync("a", "d1", [{"createdTime": 1}])
    registry.sync("b", "d1", [{"createdTime": 1}])
    clock.advance(60)

    tick = asyncio.create_task(reaper.tick())
    for _ in range(20):
        if viewer.sent:
            break
        await asyncio.sleep(0.01)
    cleared_during_tick = bool(viewer.sent) and not tick.done()

    assert await tick == ["a", "b"]
    assert cleared_during_tick
    assert json.loads(viewer.sent[0]) == {"elements": []}
    assert stuck.sent == []
