"""Read usage data that Claude Code leaves on disk.

Two sources, both optional:

- ``~/.claude/stats-cache.json``: the usage cache. The day-indexed layout
  (``dailyActivity`` / ``dailyModelTokens`` / ``modelUsage``) is the canonical
  one. Older builds wrote a flat, pre-aggregated layout to the same path with
  no version tag; it is read as a legacy fallback only when the day-indexed
  parse finds no activity rows.
- ``~/.claude/metrics/claude.prom``: Prometheus text exposition. Positive
  totals override the cache-derived "today" counters.

Nothing here raises: a missing or malformed source contributes nothing.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any

from pulsebar.usage.models import PLACEHOLDER, UsageSnapshot, rank_models

logger = logging.getLogger(__name__)

MESSAGES_METRIC = "claude_messages_total"
TOKENS_METRIC = "claude_tokens_total"
SESSIONS_METRIC = "claude_sessions_total"


@dataclass(frozen=True)
class PromTotals:
    """Summed counters from an exposition file."""

    messages: int = 0
    tokens: int = 0
    sessions: int = 0


# -- Small parsing helpers -----------------------------------------------------


def _count(value: Any) -> int:
    """Coerce a JSON value to a non-negative int, 0 when it is not a number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return max(0, int(value))


def _load_json(path: Path) -> dict[str, Any] | None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except FileNotFoundError:
        logger.debug("No usage cache at %s", path)
        return None
    except (OSError, ValueError, RecursionError) as e:
        logger.debug("Could not read usage cache %s: %s", path, e)
        return None
    if not isinstance(doc, dict):
        logger.debug("Usage cache %s is not a JSON object", path)
        return None
    return doc


def _rows(doc: dict[str, Any], key: str) -> list[dict[str, Any]]:
    """Return the dict rows under ``key`` that carry a string date."""
    raw = doc.get(key)
    if not isinstance(raw, list):
        return []
    return [r for r in raw if isinstance(r, dict) and isinstance(r.get("date"), str)]


def _row_tokens(row: dict[str, Any]) -> int:
    by_model = row.get("tokensByModel")
    if not isinstance(by_model, dict):
        return 0
    return sum(_count(v) for v in by_model.values())


def week_cutoff(last_computed_date: str | None, today: date | None = None) -> str:
    """ISO date six days before the anchor, so the window spans seven days.

    The anchor is ``last_computed_date`` when it parses as ``YYYY-MM-DD``,
    otherwise ``today`` (defaults to the current local date).
    """
    anchor: date | None = None
    if last_computed_date:
        try:
            anchor = date.fromisoformat(last_computed_date)
        except ValueError:
            anchor = None
    if anchor is None:
        anchor = today or date.today()
    try:
        return (anchor - timedelta(days=6)).isoformat()
    except OverflowError:
        return anchor.isoformat()


def format_short_date(iso_date: str) -> str:
    """``2026-03-04`` -> ``Mar 4``; unparseable input is returned as-is."""
    try:
        d = date.fromisoformat(iso_date)
    except ValueError:
        return iso_date
    return f"{d:%b} {d.day}"


def format_first_session_date(raw: Any) -> str:
    """ISO-8601 timestamp -> ``Mar 4, 2026``; placeholder when missing."""
    if not isinstance(raw, str) or not raw:
        return PLACEHOLDER
    try:
        dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return raw
    return f"{dt:%b} {dt.day}, {dt.year}"


# -- Usage cache ---------------------------------------------------------------


def _parse_day_indexed(doc: dict[str, Any], today: date | None) -> UsageSnapshot | None:
    """Parse the canonical layout. ``None`` when there are no activity rows."""
    activity = _rows(doc, "dailyActivity")
    if not activity:
        return None
    token_rows = _rows(doc, "dailyModelTokens")

    snap = UsageSnapshot()

    # ISO dates sort lexicographically in chronological order
    most_recent = sorted(activity, key=lambda r: r["date"], reverse=True)[0]
    snap.today_messages = _count(most_recent.get("messageCount"))
    snap.today_sessions = _count(most_recent.get("sessionCount"))
    snap.today_date = format_short_date(most_recent["date"])

    today_row = next((r for r in token_rows if r["date"] == most_recent["date"]), None)
    if today_row is not None:
        snap.today_tokens = _row_tokens(today_row)

    last_computed = doc.get("lastComputedDate")
    cutoff = week_cutoff(last_computed if isinstance(last_computed, str) else None, today)
    snap.week_messages = sum(
        _count(r.get("messageCount")) for r in activity if r["date"] >= cutoff
    )
    snap.week_tokens = sum(_row_tokens(r) for r in token_rows if r["date"] >= cutoff)

    model_usage = doc.get("modelUsage")
    if isinstance(model_usage, dict):
        totals: dict[str, int] = {}
        for name, stats in model_usage.items():
            if not isinstance(stats, dict):
                continue
            totals[name] = _count(stats.get("inputTokens")) + _count(stats.get("outputTokens"))
        snap.model_breakdown = rank_models(totals)

    snap.lifetime_sessions = _count(doc.get("totalSessions"))
    snap.lifetime_messages = _count(doc.get("totalMessages"))
    snap.first_session_date = format_first_session_date(doc.get("firstSessionDate"))
    return snap


def _parse_pre_aggregated(doc: dict[str, Any]) -> UsageSnapshot:
    """Legacy layout: flat totals and an already-ranked model list."""
    snap = UsageSnapshot(
        today_messages=_count(doc.get("todayMessages")),
        today_sessions=_count(doc.get("todaySessions")),
        today_tokens=_count(doc.get("todayTokens")),
        week_messages=_count(doc.get("weekMessages")),
        week_tokens=_count(doc.get("weekTokens")),
        lifetime_sessions=_count(doc.get("totalSessions", doc.get("lifetimeSessions"))),
        lifetime_messages=_count(doc.get("totalMessages", doc.get("lifetimeMessages"))),
        first_session_date=format_first_session_date(doc.get("firstSessionDate")),
    )
    today_date = doc.get("todayDate")
    if isinstance(today_date, str) and today_date:
        snap.today_date = format_short_date(today_date)

    breakdown = doc.get("modelBreakdown")
    if isinstance(breakdown, list):
        pairs: list[tuple[str, int]] = []
        for entry in breakdown:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name", entry.get("model"))
            if isinstance(name, str):
                pairs.append((name, _count(entry.get("tokens"))))
        snap.model_breakdown = rank_models(pairs)
    return snap


def parse_stats_cache(doc: dict[str, Any], today: date | None = None) -> UsageSnapshot:
    """Parse a decoded usage cache, falling back to the legacy layout."""
    snap = _parse_day_indexed(doc, today)
    if snap is not None:
        return snap
    logger.debug("No dailyActivity rows; reading usage cache as pre-aggregated layout")
    return _parse_pre_aggregated(doc)


# -- Prometheus exposition -----------------------------------------------------


def parse_prom_text(text: str) -> PromTotals:
    """Sum the message, token and session counter families.

    The metric token is matched by substring so any label set is accepted.
    """
    messages = tokens = sessions = 0
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) < 2:
            continue
        try:
            value = float(parts[-1])
        except ValueError:
            continue
        if not math.isfinite(value):
            continue

        metric = parts[0]
        if MESSAGES_METRIC in metric:
            messages += int(value)
        elif TOKENS_METRIC in metric:
            tokens += int(value)
        elif SESSIONS_METRIC in metric:
            sessions += int(value)
    return PromTotals(messages=messages, tokens=tokens, sessions=sessions)


def read_prom_totals(path: Path) -> PromTotals | None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        logger.debug("No exposition file at %s", path)
        return None
    except (OSError, UnicodeDecodeError) as e:
        logger.debug("Could not read exposition file %s: %s", path, e)
        return None
    return parse_prom_text(text)


def merge_prom(snap: UsageSnapshot, totals: PromTotals) -> UsageSnapshot:
    """Override today's counters with strictly positive exposition totals.

    A zero total means the metric was absent, so the cache value is kept.
    """
    changes: dict[str, int] = {}
    if totals.messages > 0:
        changes["today_messages"] = totals.messages
    if totals.tokens > 0:
        changes["today_tokens"] = totals.tokens
    if totals.sessions > 0:
        changes["today_sessions"] = totals.sessions
    return snap.copy(**changes) if changes else snap


# -- Entry point ---------------------------------------------------------------


def read_local_snapshot(
    stats_path: Path,
    prom_path: Path,
    today: date | None = None,
) -> UsageSnapshot:
    """Best-effort partial snapshot from the usage cache and exposition file."""
    doc = _load_json(stats_path)
    snap = parse_stats_cache(doc, today) if doc is not None else UsageSnapshot()

    totals = read_prom_totals(prom_path)
    if totals is not None:
        snap = merge_prom(snap, totals)
    return snap
