"""Tests for joining series into a ratio."""

from __future__ import annotations

from pulsebar.metrics.models import TimePoint
from pulsebar.metrics.reconciler import leverage_series, ratio_series


class TestRatioSeries:
    def test_zero_divisor_dropped(self) -> None:
        dividend = [TimePoint(1, 10.0), TimePoint(2, 20.0)]
        divisor = [TimePoint(1, 5.0), TimePoint(2, 0.0)]
        assert ratio_series(dividend, divisor) == [TimePoint(1, 2.0)]

    def test_unmatched_and_negative_dropped(self) -> None:
        dividend = [TimePoint(1, 1.0), TimePoint(2, 1.0), TimePoint(3, 9.0)]
        divisor = [TimePoint(2, -4.0), TimePoint(3, 3.0), TimePoint(4, 1.0)]
        assert ratio_series(dividend, divisor) == [TimePoint(3, 3.0)]

    def test_follows_dividend_order(self) -> None:
        dividend = [TimePoint(30, 3.0), TimePoint(10, 1.0), TimePoint(20, 2.0)]
        divisor = [TimePoint(10, 1.0), TimePoint(20, 1.0), TimePoint(30, 1.0)]
        assert [p.timestamp for p in ratio_series(dividend, divisor)] == [30, 10, 20]

    def test_empty_inputs(self) -> None:
        assert ratio_series([], [TimePoint(1, 1.0)]) == []
        assert ratio_series([TimePoint(1, 1.0)], []) == []

    def test_zero_dividend_kept(self) -> None:
        assert ratio_series([TimePoint(1, 0.0)], [TimePoint(1, 2.0)]) == [TimePoint(1, 0.0)]

    def test_leverage_is_cli_over_user(self) -> None:
        cli = [TimePoint(60_000, 300.0), TimePoint(120_000, 90.0)]
        user = [TimePoint(60_000, 60.0), TimePoint(120_000, 30.0)]
        assert leverage_series(cli, user) == [TimePoint(60_000, 5.0), TimePoint(120_000, 3.0)]
