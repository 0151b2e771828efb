"""Realized-outcome scoring for journaled signals.

Rules:
- Entry bar: first price bar on or after the signal date
- Outcome bar: forward_days - 1 bars after the entry bar, counted by
  position in the price series (non-trading days are simply absent)
- BUY correct iff return > 0, SELL iff return < 0,
  HOLD iff |return| < hold_band
- Missing bars → unresolved (retried on the next run)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

from signal_core.models.signal import Signal

DEFAULT_HOLD_BAND = 0.03


@dataclass(frozen=True)
class OutcomeResolution:
    entry_date: date
    entry_close: float
    outcome_date: date
    outcome_close: float
    outcome_return: float
    is_correct: bool


def is_correct(signal: Signal, outcome_return: float, hold_band: float = DEFAULT_HOLD_BAND) -> bool:
    """Whether a realized return vindicates the signal."""
    if signal == Signal.BUY:
        return outcome_return > 0
    if signal == Signal.SELL:
        return outcome_return < 0
    return abs(outcome_return) < hold_band


def resolve_outcome(
    signal: Signal,
    bars: Sequence[tuple[date, float]],
    forward_days: int,
    hold_band: float = DEFAULT_HOLD_BAND,
) -> OutcomeResolution | None:
    """Resolve one signal from ascending (date, close) bars starting on/after its date.

    Returns None when the outcome bar does not exist yet or a close is unusable.
    """
    if forward_days < 1:
        raise ValueError(f"forward_days must be >= 1, got {forward_days}")
    if len(bars) < forward_days:
        return None

    entry_date, entry_close = bars[0]
    outcome_date, outcome_close = bars[forward_days - 1]
    if not entry_close or entry_close <= 0 or outcome_close is None or outcome_close <= 0:
        return None

    ret = (outcome_close - entry_close) / entry_close
    return OutcomeResolution(
        entry_date=entry_date,
        entry_close=entry_close,
        outcome_date=outcome_date,
        outcome_close=outcome_close,
        outcome_return=ret,
        is_correct=is_correct(signal, ret, hold_band),
    )
