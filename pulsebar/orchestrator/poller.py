"""Background poller — refreshes the snapshot at a fixed interval."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any

from pulsebar.orchestrator.refresher import UsageRefresher

logger = logging.getLogger(__name__)


class RefreshPoller:
    """Calls ``UsageRefresher.refresh`` every ``interval`` seconds."""

    def __init__(self, refresher: UsageRefresher, interval: float = 60.0) -> None:
        self.refresher = refresher
        self.interval = interval
        self.cycles = 0
        self.last_run: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._poll_loop(), name="pulsebar-refresh")
        logger.info("Refresh poller started (interval=%ss)", self.interval)

    async def stop(self) -> None:
        """Stop the background poller."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        logger.info("Refresh poller stopped")

    async def _poll_loop(self) -> None:
        while self._running:
            await self._run_once()
            await asyncio.sleep(self.interval)

    async def _run_once(self) -> None:
        self.last_run = datetime.now(timezone.utc).isoformat()
        try:
            await self.refresher.refresh()
            self.cycles += 1
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Refresh cycle failed")

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self._running,
            "interval": self.interval,
            "cycles": self.cycles,
            "last_run": self.last_run,
        }
