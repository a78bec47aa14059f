"""One metrics refresh: liveness probe, scalar totals, then series.

Sequence per cycle:

1. ``GET /api/v1/services``. Unreachable -> backend unavailable.
2. Scalar token-usage query. No data -> backend unavailable, nothing else
   is queried this cycle.
3. Series queries (tokens, cost, the two active-time series feeding the
   leverage ratio) plus the trace/error counts start in a thread pool while
   the remaining scalar totals run one after another.

Once the probe has passed, a failed query leaves its field at the value from
the previous snapshot for the same window.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from pulsebar.metrics.models import MetricsSnapshot, TimePoint
from pulsebar.metrics.reconciler import leverage_series
from pulsebar.metrics.signoz_client import QueryMode, SignozClient
from pulsebar.metrics.windows import TimeWindow

logger = logging.getLogger(__name__)

TOKEN_METRIC = "claude_code.token.usage"
COST_METRIC = "claude_code.cost.usage"
ACTIVE_TIME_METRIC = "claude_code.active_time.total"

# Snapshot field -> metric, queried after the token probe succeeds
SCALAR_METRICS: tuple[tuple[str, str], ...] = (
    ("cost_usd", COST_METRIC),
    ("sessions", "claude_code.session.count"),
    ("lines_changed", "claude_code.lines_of_code.count"),
    ("commits", "claude_code.commit.count"),
    ("decisions", "claude_code.code_edit_tool.decision"),
)

CLI_TIME_TAG = ("type", "cli")
USER_TIME_TAG = ("type", "user")


class MetricsCollector:
    """Runs the per-cycle query sequence against a ``SignozClient``."""

    def __init__(self, client: SignozClient, max_workers: int = 6) -> None:
        self.client = client
        self._max_workers = max_workers

    def collect(
        self,
        window: TimeWindow,
        end_ms: int,
        previous: MetricsSnapshot | None = None,
    ) -> MetricsSnapshot:
        start_ms, end_ms = window.bounds(end_ms)

        services = self.client.list_services()
        if services is None:
            logger.info("SigNoz unreachable; metrics unavailable")
            return MetricsSnapshot(is_available=False, window=window.value)

        tokens = self.client.query_scalar(TOKEN_METRIC, start_ms, end_ms, window.scalar_step)
        if tokens is None:
            logger.info("No %s data for %s; metrics unavailable", TOKEN_METRIC, window.value)
            return MetricsSnapshot(is_available=False, window=window.value)

        base = previous
        if base is None or not base.is_available or base.window != window.value:
            base = MetricsSnapshot(window=window.value)
        changes: dict[str, Any] = {
            "is_available": True,
            "window": window.value,
            "services": services,
            "tokens": tokens,
        }

        step = window.series_step
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures: dict[str, Future[Any]] = {
                "token_series": pool.submit(
                    self.client.query, TOKEN_METRIC, start_ms, end_ms, step, QueryMode.SERIES
                ),
                "cost_series": pool.submit(
                    self.client.query, COST_METRIC, start_ms, end_ms, step, QueryMode.SERIES
                ),
                "cli_time": pool.submit(
                    self.client.query,
                    ACTIVE_TIME_METRIC, start_ms, end_ms, step, QueryMode.SERIES, CLI_TIME_TAG,
                ),
                "user_time": pool.submit(
                    self.client.query,
                    ACTIVE_TIME_METRIC, start_ms, end_ms, step, QueryMode.SERIES, USER_TIME_TAG,
                ),
                "trace_count": pool.submit(self.client.trace_count, start_ms, end_ms),
                "error_count": pool.submit(self.client.error_count, start_ms, end_ms),
            }

            for field_name, metric in SCALAR_METRICS:
                value = self.client.query_scalar(metric, start_ms, end_ms, window.scalar_step)
                if value is not None:
                    changes[field_name] = value

            results = {name: _result(fut, name) for name, fut in futures.items()}

        for name in ("token_series", "cost_series", "trace_count", "error_count"):
            if results[name] is not None:
                changes[name] = results[name]

        cli_time: list[TimePoint] | None = results["cli_time"]
        user_time: list[TimePoint] | None = results["user_time"]
        if cli_time is not None and user_time is not None:
            changes["leverage_series"] = leverage_series(cli_time, user_time)

        return base.copy(**changes)


def _result(fut: Future[Any], name: str) -> Any:
    try:
        return fut.result()
    except Exception:
        logger.exception("Metrics query %s crashed", name)
        return None
