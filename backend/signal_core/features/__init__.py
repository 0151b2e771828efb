"""Feature construction: extraction, windowing and normalization."""

from signal_core.features.extractor import FeatureExtractor
from signal_core.features.normalizer import (
    compute_norm_stats,
    denormalize_window,
    normalize_window,
)
from signal_core.features.schema import (
    FEATURE_NAMES,
    N_STATIC_FEATURES,
    N_TS_FEATURES,
    SNAPSHOT_FEATURES,
    STATIC_FEATURES,
    TIME_SERIES_FEATURES,
    TOTAL_FEATURES,
    feature_index,
)
from signal_core.features.static import StaticFeatureExtractor, combine
from signal_core.features.windowing import create_labeled_windows, label_for_return, window_count

__all__ = [
    "FEATURE_NAMES",
    "N_STATIC_FEATURES",
    "N_TS_FEATURES",
    "SNAPSHOT_FEATURES",
    "STATIC_FEATURES",
    "TIME_SERIES_FEATURES",
    "TOTAL_FEATURES",
    "FeatureExtractor",
    "StaticFeatureExtractor",
    "combine",
    "compute_norm_stats",
    "create_labeled_windows",
    "denormalize_window",
    "feature_index",
    "label_for_return",
    "normalize_window",
    "window_count",
]
