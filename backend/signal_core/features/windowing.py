"""Fixed-length windowing and forward-return labeling.

For start index i the window covers rows [i, i + seq_len). The decision
day is the window's last row; the label compares that day's close with
the close forward_days bars later. Nothing inside the window after its
last row exists, so labels never leak into inputs.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from signal_core.models.dataset import LabeledWindows
from signal_core.models.signal import Label


def label_for_return(forward_return: float, buy_threshold: float, sell_threshold: float) -> Label:
    """BUY above buy_threshold, SELL below sell_threshold, HOLD otherwise.

    Strict inequalities: a return exactly on a threshold is HOLD.
    """
    if forward_return > buy_threshold:
        return Label.BUY
    if forward_return < sell_threshold:
        return Label.SELL
    return Label.HOLD


def window_count(length: int, seq_len: int, forward_days: int) -> int:
    """Number of start indices a series of this length yields."""
    return max(0, length - seq_len - forward_days + 1)


def create_labeled_windows(
    dates: Sequence[str],
    features: np.ndarray,
    closes: np.ndarray,
    seq_len: int,
    forward_days: int,
    buy_threshold: float,
    sell_threshold: float,
) -> LabeledWindows:
    """Slice one symbol's feature matrix into labeled windows.

    Windows whose entry or future close is missing or non-positive are
    skipped rather than labeled synthetically.
    """
    features = np.asarray(features, dtype=np.float64)
    closes = np.asarray(closes, dtype=np.float64)
    n_features = features.shape[1] if features.ndim == 2 else 0

    windows: list[np.ndarray] = []
    labels: list[int] = []
    window_dates: list[str] = []

    for i in range(window_count(len(features), seq_len, forward_days)):
        last = i + seq_len - 1
        entry_close = closes[last]
        future_close = closes[last + forward_days]
        if not (entry_close > 0 and future_close > 0):
            continue

        forward_return = (future_close - entry_close) / entry_close
        windows.append(features[i : i + seq_len])
        labels.append(int(label_for_return(forward_return, buy_threshold, sell_threshold)))
        window_dates.append(dates[last])

    if windows:
        stacked = np.stack(windows)
    else:
        stacked = np.empty((0, seq_len, n_features), dtype=np.float64)
    return LabeledWindows(
        windows=stacked,
        labels=np.asarray(labels, dtype=np.int64),
        window_dates=window_dates,
    )
