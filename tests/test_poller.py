"""Tests for the background refresh poller."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

from pulsebar.orchestrator.poller import RefreshPoller


def _refresher(side_effect=None) -> MagicMock:
    refresher = MagicMock()
    refresher.refresh = AsyncMock(return_value=True, side_effect=side_effect)
    return refresher


class TestRefreshPoller:
    def test_runs_immediately_and_stops(self) -> None:
        refresher = _refresher()
        poller = RefreshPoller(refresher, interval=60)

        async def _run():
            await poller.start()
            await asyncio.sleep(0.05)
            await poller.stop()

        asyncio.run(_run())
        refresher.refresh.assert_awaited_once()
        assert poller.cycles == 1
        assert poller.last_run is not None
        assert poller.to_dict()["running"] is False

    def test_start_twice_is_noop(self) -> None:
        refresher = _refresher()
        poller = RefreshPoller(refresher, interval=60)

        async def _run():
            await poller.start()
            task = poller._task
            await poller.start()
            assert poller._task is task
            await poller.stop()

        asyncio.run(_run())

    def test_failed_cycle_keeps_loop_alive(self) -> None:
        refresher = _refresher(side_effect=[RuntimeError("boom"), True, True])
        poller = RefreshPoller(refresher, interval=0.01)

        async def _run():
            await poller.start()
            await asyncio.sleep(0.1)
            await poller.stop()

        asyncio.run(_run())
        assert refresher.refresh.await_count >= 2
        assert poller.cycles >= 1
