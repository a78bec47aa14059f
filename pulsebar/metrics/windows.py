"""Selectable analysis windows and their query step tables."""

from __future__ import annotations

from enum import Enum


class TimeWindow(str, Enum):
    ONE_HOUR = "1h"
    THREE_HOURS = "3h"
    TWELVE_HOURS = "12h"
    TWENTY_FOUR_HOURS = "24h"

    @property
    def milliseconds(self) -> int:
        return _WINDOW_SECONDS[self] * 1000

    @property
    def scalar_step(self) -> int:
        """Bucket width (seconds) that reduces the whole window to one value."""
        return _WINDOW_SECONDS[self]

    @property
    def series_step(self) -> int:
        """Bucket width (seconds) giving roughly 60 points per window."""
        return _SERIES_STEP[self]

    def bounds(self, end_ms: int) -> tuple[int, int]:
        """``(start_ms, end_ms)`` for a window ending at ``end_ms``."""
        return end_ms - self.milliseconds, end_ms


_WINDOW_SECONDS: dict[TimeWindow, int] = {
    TimeWindow.ONE_HOUR: 3_600,
    TimeWindow.THREE_HOURS: 10_800,
    TimeWindow.TWELVE_HOURS: 43_200,
    TimeWindow.TWENTY_FOUR_HOURS: 86_400,
}

_SERIES_STEP: dict[TimeWindow, int] = {
    TimeWindow.ONE_HOUR: 60,
    TimeWindow.THREE_HOURS: 180,
    TimeWindow.TWELVE_HOURS: 720,
    TimeWindow.TWENTY_FOUR_HOURS: 1_440,
}
