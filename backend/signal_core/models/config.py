"""Pipeline and trade memory configuration models."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel


class TrainConfig(BaseModel):
    """Windowing, labeling and universe parameters."""

    # Lookback window length in trading days (~3 months)
    seq_len: int = 60

    # Label: forward N-day return
    forward_days: int = 5
    buy_threshold: float = 0.03    # > 3% → BUY
    sell_threshold: float = -0.01  # < -1% → SELL

    # Minimum trading days in range for a symbol to enter the training universe
    min_history: int = 120

    # Extra usable bars required beyond seq_len + forward_days
    history_margin: int = 10

    # Prediction universe: symbols with at least seq_len + this many bars
    prediction_extra_days: int = 20
    prediction_start: date = date(2020, 1, 1)

    # Training only: fundamentals_history as of each bar instead of the latest snapshot
    point_in_time_fundamentals: bool = True

    @property
    def min_usable_length(self) -> int:
        return self.seq_len + self.forward_days + self.history_margin

    @property
    def prediction_min_days(self) -> int:
        return self.seq_len + self.prediction_extra_days


class MemoryConfig(BaseModel):
    """Journal, reflection and adjustment parameters."""

    # L2 reflection
    reflection_limit: int = 2000
    min_samples_for_pattern: int = 20
    high_confidence: float = 0.7
    low_confidence: float = 0.5

    # Outcome scoring: HOLD is correct when |return| stays inside this band
    hold_band: float = 0.03

    # L3 adjustments
    pattern_win_rate_threshold: float = 0.4
    confidence_scale_min: float = 0.3
    suppress_return_threshold: float = -0.02
    suppress_sample_multiplier: int = 2

    # Journal only non-HOLD predictions above this adjusted confidence
    record_min_confidence: float = 0.55
