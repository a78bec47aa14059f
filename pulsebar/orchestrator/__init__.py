from pulsebar.orchestrator.poller import RefreshPoller
from pulsebar.orchestrator.refresher import UsageRefresher
from pulsebar.orchestrator.store import SnapshotStore

__all__ = ["RefreshPoller", "SnapshotStore", "UsageRefresher"]
