"""Signal and journal models."""

from __future__ import annotations

from datetime import date
from enum import Enum, IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Label(IntEnum):
    """Class label assigned to a training window."""

    SELL = 0
    HOLD = 1
    BUY = 2


class Signal(str, Enum):
    """Categorical trading recommendation."""

    BUY = "BUY"
    HOLD = "HOLD"
    SELL = "SELL"

    @classmethod
    def from_label(cls, label: int) -> "Signal":
        return cls(Label(label).name)

    @property
    def label(self) -> Label:
        return Label[self.value]


class JournalEntry(BaseModel):
    """One emitted signal (L1 hot memory).

    Append-only except for the outcome fields, which are set once by
    outcome resolution.
    """

    model_config = ConfigDict(protected_namespaces=())

    id: int | None = None
    model_id: str
    symbol: str
    signal_date: date
    signal: Signal
    confidence: float
    feature_snapshot: dict[str, Any] | None = None
    reasoning: str | None = None
    outcome_return: float | None = None
    outcome_date: date | None = None
    is_correct: bool | None = None

    @property
    def is_resolved(self) -> bool:
        return self.outcome_return is not None


class ResolvedTrade(BaseModel):
    """Resolved journal row as consumed by reflection."""

    signal: Signal
    confidence: float
    outcome_return: float
    is_correct: bool
    feature_snapshot: dict[str, Any] | None = Field(default=None)
