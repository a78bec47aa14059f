"""Metrics snapshot data model."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class TimePoint:
    """One bucket of a series. ``timestamp`` is epoch milliseconds."""

    timestamp: int
    value: float


@dataclass
class MetricsSnapshot:
    """Everything read from the metrics backend in one refresh."""

    is_available: bool = False
    window: str = "1h"
    services: list[str] = field(default_factory=list)
    tokens: float = 0.0
    cost_usd: float = 0.0
    sessions: float = 0.0
    lines_changed: float = 0.0
    commits: float = 0.0
    decisions: float = 0.0
    trace_count: int = 0
    error_count: int = 0
    token_series: list[TimePoint] = field(default_factory=list)
    cost_series: list[TimePoint] = field(default_factory=list)
    leverage_series: list[TimePoint] = field(default_factory=list)

    def copy(self, **changes: Any) -> MetricsSnapshot:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        def _series(points: list[TimePoint]) -> list[dict[str, Any]]:
            return [{"timestamp": p.timestamp, "value": p.value} for p in points]

        return {
            "is_available": self.is_available,
            "window": self.window,
            "services": list(self.services),
            "tokens": self.tokens,
            "cost_usd": self.cost_usd,
            "sessions": self.sessions,
            "lines_changed": self.lines_changed,
            "commits": self.commits,
            "decisions": self.decisions,
            "trace_count": self.trace_count,
            "error_count": self.error_count,
            "token_series": _series(self.token_series),
            "cost_series": _series(self.cost_series),
            "leverage_series": _series(self.leverage_series),
        }
