"""Refresh cycle: gather every source concurrently, merge, publish once.

Each gatherer runs in the thread pool and returns its own value; nothing
writes to the store until all of them are done and ``_merge`` has built the
new snapshots. Overlapping refresh requests join the cycle already in flight.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any

from pulsebar.config import Settings
from pulsebar.metrics.collector import MetricsCollector
from pulsebar.metrics.models import MetricsSnapshot
from pulsebar.metrics.signoz_client import SignozClient
from pulsebar.metrics.windows import TimeWindow
from pulsebar.orchestrator.store import SnapshotStore
from pulsebar.usage.anthropic_client import AnthropicUsageClient, UsageReport
from pulsebar.usage.credentials import resolve_access_token
from pulsebar.usage.local_reader import read_local_snapshot
from pulsebar.usage.models import DataSource, LimitWindow, UsageSnapshot, utcnow

logger = logging.getLogger(__name__)


class UsageRefresher:
    """Drives refresh cycles for a single ``SnapshotStore``."""

    def __init__(
        self,
        store: SnapshotStore,
        usage_client: AnthropicUsageClient,
        collector: MetricsCollector,
        token_resolver: Callable[[], str | None],
        stats_path: Path,
        prom_path: Path,
        admin_key: str = "",
        max_workers: int = 4,
    ) -> None:
        self.store = store
        self.usage_client = usage_client
        self.collector = collector
        self.token_resolver = token_resolver
        self.stats_path = stats_path
        self.prom_path = prom_path
        self.admin_key = admin_key
        self._executor = ThreadPoolExecutor(max_workers=max_workers)
        self._inflight: asyncio.Task[None] | None = None

    @classmethod
    def from_settings(cls, store: SnapshotStore, cfg: Settings) -> UsageRefresher:
        """Wire every collaborator from configuration."""
        usage_client = AnthropicUsageClient(
            base_url=cfg.anthropic_base_url,
            api_version=cfg.anthropic_version,
            oauth_beta=cfg.oauth_beta,
            user_agent=cfg.oauth_user_agent,
            timeout=cfg.request_timeout,
        )
        signoz = SignozClient(
            base_url=cfg.signoz_base_url,
            api_key=cfg.signoz_api_key,
            timeout=cfg.request_timeout,
        )
        return cls(
            store=store,
            usage_client=usage_client,
            collector=MetricsCollector(signoz),
            token_resolver=partial(
                resolve_access_token, cfg.keychain_service, cfg.keychain_timeout
            ),
            stats_path=cfg.stats_cache_path,
            prom_path=cfg.prom_path,
            admin_key=cfg.anthropic_admin_key,
        )

    @property
    def uses_api(self) -> bool:
        return bool(self.admin_key)

    async def refresh(self) -> bool:
        """Run one cycle. Returns ``False`` when it joined a running cycle."""
        if self._inflight is not None and not self._inflight.done():
            logger.debug("Refresh already in flight; coalescing")
            await asyncio.shield(self._inflight)
            return False

        self._inflight = asyncio.create_task(self._run_cycle())
        try:
            await asyncio.shield(self._inflight)
        finally:
            if self._inflight is not None and self._inflight.done():
                self._inflight = None
        return True

    async def set_window(self, window: TimeWindow) -> bool:
        """Select the analysis window and refresh for it.

        A cycle already in flight was started for the old window, so a
        changed window gets one more cycle after it.
        """
        changed = window is not self.store.window
        self.store.window = window
        started = await self.refresh()
        if not started and changed:
            started = await self.refresh()
        return started

    def close(self) -> None:
        self._executor.shutdown(wait=False)

    # ── Cycle ────────────────────────────────────────────────────────────

    async def _run_cycle(self) -> None:
        loop = asyncio.get_running_loop()
        window = self.store.window
        previous_usage = self.store.usage
        previous_metrics = self.store.metrics
        t0 = time.perf_counter()

        self.store.begin_refresh()
        try:
            jobs: list[Any] = [
                loop.run_in_executor(
                    self._executor, read_local_snapshot, self.stats_path, self.prom_path
                ),
                loop.run_in_executor(self._executor, self._fetch_limits),
                loop.run_in_executor(
                    self._executor,
                    self.collector.collect,
                    window,
                    int(time.time() * 1000),
                    previous_metrics,
                ),
            ]
            if self.uses_api:
                jobs.append(
                    loop.run_in_executor(
                        self._executor, self.usage_client.fetch_usage_report, self.admin_key
                    )
                )

            results = await asyncio.gather(*jobs, return_exceptions=True)
            local = _ok(results[0], "local files")
            limits = _ok(results[1], "usage limits")
            metrics = _ok(results[2], "metrics")
            report = _ok(results[3], "usage report") if self.uses_api else None

            usage = _merge(
                local if local is not None else UsageSnapshot(),
                report,
                limits if limits is not None else previous_usage.usage_limits,
            )
            if metrics is None:
                metrics = MetricsSnapshot(is_available=False, window=window.value)

            self.store.publish(usage, metrics)
            logger.info(
                "Refresh done in %.0fms: source=%s limits=%d metrics=%s",
                (time.perf_counter() - t0) * 1000,
                usage.data_source.value,
                len(usage.usage_limits),
                "up" if metrics.is_available else "down",
            )
        finally:
            self.store.end_refresh()

    def _fetch_limits(self) -> list[LimitWindow] | None:
        """Usage-limit windows; ``[]`` without a token, ``None`` on call failure."""
        token = self.token_resolver()
        if not token:
            return []
        return self.usage_client.fetch_usage_limits(token)


def _merge(
    local: UsageSnapshot,
    report: UsageReport | None,
    limits: list[LimitWindow],
) -> UsageSnapshot:
    """Apply the API override to the local snapshot and stamp it."""
    changes: dict[str, Any] = {
        "usage_limits": list(limits),
        "last_updated": utcnow(),
        "data_source": DataSource.LOCAL,
    }
    # An empty breakdown means the report carried nothing; keep local values
    if report is not None and report.model_breakdown:
        changes["today_tokens"] = report.total_tokens
        changes["model_breakdown"] = report.model_breakdown
        changes["data_source"] = DataSource.API
    return local.copy(**changes)


def _ok(result: Any, name: str) -> Any:
    if isinstance(result, BaseException):
        logger.error("Refresh step %s crashed: %r", name, result)
        return None
    return result
