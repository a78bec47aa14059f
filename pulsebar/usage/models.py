"""Usage snapshot data model.

A ``UsageSnapshot`` is built from scratch on every refresh cycle and swapped
into the store as a whole; nothing patches a published snapshot in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any

PLACEHOLDER = "—"

# Colors are assigned by rank, cycling through the palette
PALETTE = ("blue", "purple", "green", "orange", "red", "teal", "pink", "yellow")


class DataSource(str, Enum):
    LOCAL = "Local"
    API = "API"


@dataclass(frozen=True)
class ModelStat:
    """Token total for a single model, ranked and colored."""

    name: str
    tokens: int
    color: str


@dataclass(frozen=True)
class LimitWindow:
    """Utilization of one OAuth usage-limit window."""

    label: str  # "5-hour" | "7-day" | "Sonnet"
    utilization: float  # percent, may exceed 100
    resets_at: datetime | None = None


@dataclass
class UsageSnapshot:
    """Complete merged usage state produced by one refresh."""

    today_messages: int = 0
    today_sessions: int = 0
    today_tokens: int = 0
    today_date: str = PLACEHOLDER
    week_messages: int = 0
    week_tokens: int = 0
    model_breakdown: list[ModelStat] = field(default_factory=list)
    lifetime_sessions: int = 0
    lifetime_messages: int = 0
    first_session_date: str = PLACEHOLDER
    usage_limits: list[LimitWindow] = field(default_factory=list)
    data_source: DataSource = DataSource.LOCAL
    last_updated: datetime | None = None

    def copy(self, **changes: Any) -> UsageSnapshot:
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "today_messages": self.today_messages,
            "today_sessions": self.today_sessions,
            "today_tokens": self.today_tokens,
            "today_date": self.today_date,
            "week_messages": self.week_messages,
            "week_tokens": self.week_tokens,
            "model_breakdown": [
                {"name": m.name, "tokens": m.tokens, "color": m.color}
                for m in self.model_breakdown
            ],
            "lifetime_sessions": self.lifetime_sessions,
            "lifetime_messages": self.lifetime_messages,
            "first_session_date": self.first_session_date,
            "usage_limits": [
                {
                    "label": w.label,
                    "utilization": w.utilization,
                    "resets_at": w.resets_at.isoformat() if w.resets_at else None,
                }
                for w in self.usage_limits
            ],
            "data_source": self.data_source.value,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


def rank_models(totals: dict[str, int] | list[tuple[str, int]]) -> list[ModelStat]:
    """Sort model totals descending and assign palette colors by rank.

    ``sorted`` is stable, so ties keep the order they arrived in.
    """
    pairs = list(totals.items()) if isinstance(totals, dict) else list(totals)
    ranked = sorted(pairs, key=lambda p: p[1], reverse=True)
    return [
        ModelStat(name=name, tokens=tokens, color=PALETTE[i % len(PALETTE)])
        for i, (name, tokens) in enumerate(ranked)
    ]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
