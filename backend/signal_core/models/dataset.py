"""Feature series, windows and dataset containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator


class NormStats(BaseModel):
    """Frozen per-dimension z-score statistics.

    Computed once over the training windows and reused verbatim for every
    later normalization, including live inference.
    """

    model_config = ConfigDict(frozen=True)

    means: tuple[float, ...]
    stds: tuple[float, ...]

    @field_validator("stds")
    @classmethod
    def _stds_positive(cls, v: tuple[float, ...]) -> tuple[float, ...]:
        if any(s <= 0 for s in v):
            raise ValueError("Standard deviations must be positive")
        return v

    def model_post_init(self, __context) -> None:
        if len(self.means) != len(self.stds):
            raise ValueError(
                f"means/stds length mismatch: {len(self.means)} != {len(self.stds)}"
            )

    @property
    def n_features(self) -> int:
        return len(self.means)

    def as_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        return np.asarray(self.means, dtype=np.float64), np.asarray(self.stds, dtype=np.float64)


@dataclass
class SymbolSeries:
    """Ascending per-day feature rows for one symbol."""

    symbol: str
    dates: list[str]
    closes: np.ndarray    # [N]
    features: np.ndarray  # [N, n_features]

    def __len__(self) -> int:
        return len(self.dates)


@dataclass
class LabeledWindows:
    """Parallel windows / labels / decision dates for one symbol."""

    windows: np.ndarray  # [n, seq_len, n_features]
    labels: np.ndarray   # [n]
    window_dates: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.window_dates)


@dataclass
class TrainingDataset:
    """Normalized training set handed to the external trainer."""

    X: np.ndarray  # [samples, seq_len, n_features]
    y: np.ndarray  # [samples]
    symbols: list[str]
    dates: list[str]
    stats: NormStats
    class_counts: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.symbols)

    def to_payload(self) -> dict[str, Any]:
        """Trainer contract: {X, y, symbols, dates, stats: {means, stds}}."""
        return {
            "X": self.X.tolist(),
            "y": self.y.tolist(),
            "symbols": list(self.symbols),
            "dates": list(self.dates),
            "stats": {"means": list(self.stats.means), "stds": list(self.stats.stds)},
        }


@dataclass
class PredictionInput:
    """Latest normalized window per symbol for live scoring.

    snapshots holds the raw (unnormalized) last-day values of selected
    features, recorded alongside journaled signals.
    """

    symbols: list[str]
    X: np.ndarray  # [n, seq_len, n_features]
    snapshots: list[dict[str, float]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.symbols)

    def to_payload(self) -> dict[str, Any]:
        """Scorer contract: {symbols, X}."""
        return {"symbols": list(self.symbols), "X": self.X.tolist()}
