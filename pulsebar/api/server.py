"""FastAPI server exposing the aggregated usage snapshot."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pulsebar import __version__
from pulsebar.api.routes import broadcast_snapshot, router
from pulsebar.config import settings
from pulsebar.metrics.windows import TimeWindow
from pulsebar.orchestrator.poller import RefreshPoller
from pulsebar.orchestrator.refresher import UsageRefresher
from pulsebar.orchestrator.store import SnapshotStore

logger = logging.getLogger(__name__)


def _initial_window() -> TimeWindow:
    try:
        return TimeWindow(settings.default_window)
    except ValueError:
        logger.warning("Invalid default_window %r — using 1h", settings.default_window)
        return TimeWindow.ONE_HOUR


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the store, refresher and poller; tear them down on shutdown."""
    store = SnapshotStore(window=_initial_window())
    store.subscribe(broadcast_snapshot)
    app.state.store = store

    refresher = UsageRefresher.from_settings(store, settings)
    app.state.refresher = refresher
    logger.info(
        "Usage source: %s — SigNoz at %s",
        "Anthropic API" if refresher.uses_api else "local files",
        settings.signoz_base_url,
    )

    poller = RefreshPoller(refresher, interval=float(settings.refresh_interval))
    app.state.poller = poller
    try:
        await poller.start()
    except Exception:
        logger.exception("Refresh poller failed to start")

    yield

    await poller.stop()
    refresher.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Pulsebar - usage metrics",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router, prefix="/api")
    return app


app = create_app()
