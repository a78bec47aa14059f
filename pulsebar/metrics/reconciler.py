"""Join two independently queried series into a per-bucket ratio."""

from __future__ import annotations

from collections.abc import Iterable

from pulsebar.metrics.models import TimePoint


def ratio_series(
    dividend: Iterable[TimePoint],
    divisor: Iterable[TimePoint],
) -> list[TimePoint]:
    """Divide ``dividend`` by ``divisor`` bucket by bucket.

    Buckets are matched on exact timestamp. A bucket is emitted only when the
    divisor has a strictly positive value for it; everything else is dropped,
    so the result can be shorter than either input. Output keeps the
    dividend's order.
    """
    by_ts = {p.timestamp: p.value for p in divisor}
    out: list[TimePoint] = []
    for point in dividend:
        denom = by_ts.get(point.timestamp)
        if denom is None or denom <= 0:
            continue
        out.append(TimePoint(timestamp=point.timestamp, value=point.value / denom))
    return out


def leverage_series(cli_time: Iterable[TimePoint], user_time: Iterable[TimePoint]) -> list[TimePoint]:
    """Assistant active time per unit of human active time, per bucket."""
    return ratio_series(cli_time, user_time)
