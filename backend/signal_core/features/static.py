"""Static (fundamental) features.

The latest snapshot is what live inference should see. For training,
broadcasting today's fundamentals over years of history leaks the present
into past timesteps, so point_in_time() aligns each bar with the newest
snapshot published on or before that bar's date.
"""

from __future__ import annotations

from typing import Mapping

import numpy as np
import pandas as pd

from signal_core.features.schema import N_STATIC_FEATURES, STATIC_FEATURES


class StaticFeatureExtractor:
    """Build the 6-dim fundamentals vector for a symbol."""

    def vector(self, snapshot: Mapping[str, float | None] | None) -> np.ndarray:
        """[pe, pb, yield, revenue_yoy, gross_margin, debt_ratio], zeros when absent."""
        if not snapshot:
            return np.zeros(N_STATIC_FEATURES, dtype=np.float64)
        return np.array(
            [float(snapshot.get(name) or 0.0) for name in STATIC_FEATURES],
            dtype=np.float64,
        )

    def broadcast(self, vector: np.ndarray, n_steps: int) -> np.ndarray:
        """Repeat one vector for every timestep: [n_steps, 6]."""
        return np.tile(vector, (n_steps, 1))

    def point_in_time(self, history: pd.DataFrame, dates: list[str]) -> np.ndarray:
        """As-of fundamentals for each date: [len(dates), 6].

        history needs an ``as_of_date`` column plus the static feature
        columns. Dates before the first snapshot get zeros.
        """
        if history is None or history.empty or not dates:
            return np.zeros((len(dates), N_STATIC_FEATURES), dtype=np.float64)

        snapshots = history.copy()
        # merge_asof needs both keys at the same datetime resolution
        snapshots["as_of_date"] = pd.to_datetime(snapshots["as_of_date"]).astype("datetime64[ns]")
        snapshots = snapshots.sort_values("as_of_date", kind="stable")
        for name in STATIC_FEATURES:
            if name not in snapshots.columns:
                snapshots[name] = 0.0

        bars = pd.DataFrame({"date": pd.to_datetime(pd.Series(dates)).astype("datetime64[ns]")})
        bars["_order"] = np.arange(len(bars))
        merged = pd.merge_asof(
            bars.sort_values("date", kind="stable"),
            snapshots[["as_of_date", *STATIC_FEATURES]],
            left_on="date",
            right_on="as_of_date",
            direction="backward",
        ).sort_values("_order")

        values = merged[list(STATIC_FEATURES)].apply(pd.to_numeric, errors="coerce")
        return values.fillna(0.0).to_numpy(dtype=np.float64)


def combine(ts_features: np.ndarray, static_features: np.ndarray) -> np.ndarray:
    """Append static columns to time-series rows: [N, 19] + [N, 6] → [N, 25]."""
    if len(ts_features) != len(static_features):
        raise ValueError(
            f"Row count mismatch: {len(ts_features)} time-series vs "
            f"{len(static_features)} static"
        )
    return np.hstack([ts_features, static_features])
