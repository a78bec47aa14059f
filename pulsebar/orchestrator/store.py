"""Process-wide snapshot container with publish/subscribe."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pulsebar.metrics.models import MetricsSnapshot
from pulsebar.metrics.windows import TimeWindow
from pulsebar.usage.models import UsageSnapshot

logger = logging.getLogger(__name__)

Subscriber = Callable[[UsageSnapshot, MetricsSnapshot], Any]


class SnapshotStore:
    """Holds the current usage and metrics snapshots.

    Both start empty and are only ever swapped together by ``publish``.
    Subscribers are called after every swap.
    """

    def __init__(self, window: TimeWindow = TimeWindow.ONE_HOUR) -> None:
        self.usage = UsageSnapshot()
        self.metrics = MetricsSnapshot(window=window.value)
        self.window = window
        self.is_refreshing = False
        self.publish_count = 0
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that unregisters it."""
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def begin_refresh(self) -> None:
        self.is_refreshing = True

    def end_refresh(self) -> None:
        self.is_refreshing = False

    def publish(self, usage: UsageSnapshot, metrics: MetricsSnapshot) -> None:
        self.usage = usage
        self.metrics = metrics
        self.publish_count += 1
        for callback in list(self._subscribers):
            try:
                callback(usage, metrics)
            except Exception:
                logger.exception("Snapshot subscriber error")

    def status(self) -> dict[str, Any]:
        last = self.usage.last_updated
        return {
            "is_refreshing": self.is_refreshing,
            "last_updated": last.isoformat() if last else None,
            "window": self.window.value,
            "metrics_window": self.metrics.window,
            "data_source": self.usage.data_source.value,
            "metrics_available": self.metrics.is_available,
            "publish_count": self.publish_count,
        }
