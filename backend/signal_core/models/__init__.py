"""Domain models."""

from signal_core.models.config import MemoryConfig, TrainConfig
from signal_core.models.dataset import (
    LabeledWindows,
    NormStats,
    PredictionInput,
    SymbolSeries,
    TrainingDataset,
)
from signal_core.models.memory import (
    ALLOWED_TRANSITIONS,
    Adjustment,
    AdjustmentStatus,
    AdjustmentType,
    ConfidenceScale,
    ModelMeta,
    Pattern,
    PatternCondition,
    PatternStatus,
    SignalSuppress,
    payload_from_json,
    payload_to_json,
)
from signal_core.models.signal import JournalEntry, Label, ResolvedTrade, Signal

__all__ = [
    # Config
    "MemoryConfig",
    "TrainConfig",
    # Dataset
    "LabeledWindows",
    "NormStats",
    "PredictionInput",
    "SymbolSeries",
    "TrainingDataset",
    # Signals / journal
    "JournalEntry",
    "Label",
    "ResolvedTrade",
    "Signal",
    # Memory
    "ALLOWED_TRANSITIONS",
    "Adjustment",
    "AdjustmentStatus",
    "AdjustmentType",
    "ConfidenceScale",
    "ModelMeta",
    "Pattern",
    "PatternCondition",
    "PatternStatus",
    "SignalSuppress",
    "payload_from_json",
    "payload_to_json",
]
