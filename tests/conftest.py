from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest


class FakeConnection:
    """Push connection double recording every frame it is sent."""

    def __init__(self, *, closed: bool = False, error: Exception | None = None, delay: float = 0.0) -> None:
        self.closed = closed
        self.sent: list[str] = []
        self._error = error
        self._delay = delay

    async def send_str(self, data: str) -> None:
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        self.sent.append(data)


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_connection() -> Callable[..., FakeConnection]:
    return FakeConnection


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
