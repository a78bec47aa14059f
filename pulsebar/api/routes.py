"""API routes exposing the current snapshots.

Endpoints:
  GET  /api/usage            — merged usage snapshot
  GET  /api/metrics          — metrics backend snapshot
  GET  /api/status           — refresh state, window, poller diagnostics
  POST /api/refresh          — manual refresh (joins a cycle in flight)
  PUT  /api/window/{window}  — select 1h / 3h / 12h / 24h and refresh
  GET  /api/stream           — SSE stream of published snapshots
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from pulsebar.metrics.models import MetricsSnapshot
from pulsebar.metrics.windows import TimeWindow
from pulsebar.orchestrator.store import SnapshotStore
from pulsebar.usage.models import UsageSnapshot

logger = logging.getLogger(__name__)

router = APIRouter()

# ── SSE subscriber list (in-memory) ──────────────────────────────────────────

_sse_queues: list[asyncio.Queue[dict[str, Any]]] = []


def snapshot_payload(usage: UsageSnapshot, metrics: MetricsSnapshot) -> dict[str, Any]:
    return {"usage": usage.to_dict(), "metrics": metrics.to_dict()}


def broadcast_snapshot(usage: UsageSnapshot, metrics: MetricsSnapshot) -> None:
    """Push a published snapshot to all SSE subscribers."""
    data = snapshot_payload(usage, metrics)
    for q in _sse_queues:
        try:
            q.put_nowait(data)
        except asyncio.QueueFull:
            pass  # slow consumer, drop


def _store(request: Request) -> SnapshotStore:
    return request.app.state.store  # type: ignore[no-any-return]


# ── Endpoints ────────────────────────────────────────────────────────────────


@router.get("/usage")
def get_usage(request: Request) -> dict[str, Any]:
    return _store(request).usage.to_dict()


@router.get("/metrics")
def get_metrics(request: Request) -> dict[str, Any]:
    return _store(request).metrics.to_dict()


@router.get("/status")
def get_status(request: Request) -> dict[str, Any]:
    status = _store(request).status()
    poller = getattr(request.app.state, "poller", None)
    status["poller"] = poller.to_dict() if poller else None
    return status


@router.post("/refresh")
async def refresh(request: Request) -> dict[str, Any]:
    """Run a refresh now, or wait for the one already running."""
    started = await request.app.state.refresher.refresh()
    store = _store(request)
    return {"coalesced": not started, **snapshot_payload(store.usage, store.metrics)}


@router.put("/window/{window}")
async def select_window(window: str, request: Request) -> dict[str, Any]:
    try:
        selected = TimeWindow(window)
    except ValueError:
        allowed = ", ".join(w.value for w in TimeWindow)
        raise HTTPException(400, f"Unknown window {window!r}; expected one of {allowed}")
    await request.app.state.refresher.set_window(selected)
    return _store(request).metrics.to_dict()


@router.get("/stream")
async def snapshot_stream(request: Request) -> StreamingResponse:
    """Server-Sent Events stream of every published snapshot."""
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=10)
    _sse_queues.append(queue)

    async def event_generator():
        try:
            store = _store(request)
            yield f"event: init\ndata: {json.dumps(snapshot_payload(store.usage, store.metrics))}\n\n"

            while True:
                if await request.is_disconnected():
                    break
                try:
                    data = await asyncio.wait_for(queue.get(), timeout=30)
                    yield f"event: snapshot\ndata: {json.dumps(data)}\n\n"
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            if queue in _sse_queues:
                _sse_queues.remove(queue)

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
