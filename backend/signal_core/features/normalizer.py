"""Z-score normalization with frozen statistics."""

from __future__ import annotations

import numpy as np

from signal_core.models.dataset import NormStats

# Std at or below this fraction of max(|mean|, 1) is treated as zero
CONSTANT_RTOL = 1e-8


def compute_norm_stats(windows: np.ndarray) -> NormStats:
    """Per-dimension mean and population std over every (sample, timestep) row.

    A constant (or numerically constant) feature gets std 1 so it
    normalizes to ~0 instead of amplifying rounding noise.
    """
    arr = np.asarray(windows, dtype=np.float64)
    if arr.ndim != 3 or arr.shape[0] == 0:
        raise ValueError(f"Expected non-empty [samples, seq_len, features] array, got shape {arr.shape}")

    rows = np.nan_to_num(arr.reshape(-1, arr.shape[-1]), nan=0.0)
    means = rows.mean(axis=0)
    stds = np.sqrt(np.maximum(rows.var(axis=0), 0.0))

    constant = (np.ptp(rows, axis=0) == 0) | (stds <= CONSTANT_RTOL * np.maximum(np.abs(means), 1.0))
    stds[constant] = 1.0

    return NormStats(means=tuple(means.tolist()), stds=tuple(stds.tolist()))


def normalize_window(window: np.ndarray, stats: NormStats) -> np.ndarray:
    """Elementwise (x - mean) / std. Works on one window or a stack of them."""
    arr = np.asarray(window, dtype=np.float64)
    if arr.shape[-1] != stats.n_features:
        raise ValueError(
            f"Window has {arr.shape[-1]} features, stats cover {stats.n_features}"
        )
    means, stds = stats.as_arrays()
    return (arr - means) / stds


def denormalize_window(window: np.ndarray, stats: NormStats) -> np.ndarray:
    """Inverse of normalize_window: x * std + mean."""
    arr = np.asarray(window, dtype=np.float64)
    means, stds = stats.as_arrays()
    return arr * stds + means
