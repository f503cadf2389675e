from .outlier_filter import FilterResult, filter_outliers
from .pairing import (
    BoundedEntryCache,
    PairingEngine,
    consecutive_completion_deltas,
    paired_durations,
)
from .window_aggregator import WindowAggregator

__all__ = [
    "FilterResult",
    "filter_outliers",
    "BoundedEntryCache",
    "PairingEngine",
    "consecutive_completion_deltas",
    "paired_durations",
    "WindowAggregator",
]
