from pulsebar.usage.models import (
    PALETTE,
    DataSource,
    LimitWindow,
    ModelStat,
    UsageSnapshot,
    rank_models,
)

__all__ = [
    "PALETTE",
    "DataSource",
    "LimitWindow",
    "ModelStat",
    "UsageSnapshot",
    "rank_models",
]
