from pulsebar.metrics.collector import MetricsCollector
from pulsebar.metrics.models import MetricsSnapshot, TimePoint
from pulsebar.metrics.reconciler import leverage_series, ratio_series
from pulsebar.metrics.signoz_client import QueryMode, SignozClient
from pulsebar.metrics.windows import TimeWindow

__all__ = [
    "MetricsCollector",
    "MetricsSnapshot",
    "QueryMode",
    "SignozClient",
    "TimePoint",
    "TimeWindow",
    "leverage_series",
    "ratio_series",
]
