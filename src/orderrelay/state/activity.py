"""Last-sync timestamps per merchant."""

from __future__ import annotations


class ActivityTracker:
    """Wall-clock time (epoch seconds) of each merchant's last device sync.

    Only syncs touch a merchant; registrations and reads never do.  A
    merchant that was never touched is reported stale, but since the reaper
    only walks :meth:`merchant_ids` it is never considered for eviction.
    """

    def __init__(self) -> None:
        self._last_activity: dict[str, float] = {}

    def touch(self, merchant_id: str, now: float) -> None:
        self._last_activity[merchant_id] = now

    def is_stale(self, merchant_id: str, now: float, threshold: float) -> bool:
        """``True`` iff ``now - last_activity >= threshold``."""
        last = self._last_activity.get(merchant_id)
        if last is None:
            return True
        return (now - last) >= threshold

    def forget(self, merchant_id: str) -> None:
        self._last_activity.pop(merchant_id, None)

    def last_activity(self, merchant_id: str) -> float | None:
        return self._last_activity.get(merchant_id)

    def merchant_ids(self) -> list[str]:
        """Snapshot of tracked merchants, safe to iterate while forgetting."""
        return list(self._last_activity)
