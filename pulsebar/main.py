"""Entry point for Pulsebar."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

import uvicorn
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from pulsebar.config import settings
from pulsebar.metrics.models import MetricsSnapshot
from pulsebar.metrics.windows import TimeWindow
from pulsebar.orchestrator.refresher import UsageRefresher
from pulsebar.orchestrator.store import SnapshotStore
from pulsebar.usage.models import PLACEHOLDER, UsageSnapshot

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def run_server() -> None:
    """Start the FastAPI server."""
    console.print(Panel("Starting Pulsebar API Server", style="bold green"))
    uvicorn.run(
        "pulsebar.api.server:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
    )


async def _refresh_once(window: TimeWindow) -> SnapshotStore:
    store = SnapshotStore(window=window)
    refresher = UsageRefresher.from_settings(store, settings)
    try:
        await refresher.refresh()
    finally:
        refresher.close()
    return store


def _usage_table(usage: UsageSnapshot) -> Table:
    table = Table(title=f"Usage ({usage.data_source.value})", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")
    table.add_row(f"Today ({usage.today_date})", f"{usage.today_messages:,} msgs / {usage.today_sessions:,} sessions")
    table.add_row("Today tokens", f"{usage.today_tokens:,}")
    table.add_row("Last 7 days", f"{usage.week_messages:,} msgs / {usage.week_tokens:,} tokens")
    table.add_row("Lifetime", f"{usage.lifetime_messages:,} msgs / {usage.lifetime_sessions:,} sessions")
    table.add_row("Since", usage.first_session_date)
    for m in usage.model_breakdown:
        table.add_row(f"[{m.color}]{m.name}[/{m.color}]", f"{m.tokens:,}")
    for w in usage.usage_limits:
        resets = w.resets_at.strftime("%Y-%m-%d %H:%M") if w.resets_at else PLACEHOLDER
        table.add_row(f"Limit {w.label}", f"{w.utilization:.0f}% (resets {resets})")
    return table


def _metrics_table(metrics: MetricsSnapshot) -> Table:
    table = Table(title=f"SigNoz ({metrics.window})", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")
    if not metrics.is_available:
        table.add_row("Status", "[red]offline[/red]")
        return table
    table.add_row("Services", str(len(metrics.services)))
    table.add_row("Tokens", f"{metrics.tokens:,.0f}")
    table.add_row("Cost", f"${metrics.cost_usd:.2f}")
    table.add_row("Sessions", f"{metrics.sessions:,.0f}")
    table.add_row("Lines changed", f"{metrics.lines_changed:,.0f}")
    table.add_row("Commits", f"{metrics.commits:,.0f}")
    table.add_row("Edit decisions", f"{metrics.decisions:,.0f}")
    table.add_row("Traces / errors", f"{metrics.trace_count:,} / {metrics.error_count:,}")
    if metrics.leverage_series:
        latest = metrics.leverage_series[-1].value
        table.add_row("Leverage (latest)", f"{latest:.1f}x")
    return table


def run_snapshot(window: str) -> None:
    """Run a single refresh cycle and print the result."""
    with console.status("[bold green]Refreshing..."):
        store = asyncio.run(_refresh_once(TimeWindow(window)))
    console.print(_usage_table(store.usage))
    console.print(_metrics_table(store.metrics))


def main() -> None:
    parser = argparse.ArgumentParser(description="Pulsebar usage metrics")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Start the API server")

    snap_parser = sub.add_parser("snapshot", help="Refresh once and print the snapshot")
    snap_parser.add_argument(
        "--window",
        choices=[w.value for w in TimeWindow],
        default=settings.default_window,
        help="Metrics window",
    )

    args = parser.parse_args()

    if args.command == "serve":
        run_server()
    elif args.command == "snapshot":
        run_snapshot(args.window)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
