"""Services: dataset construction and the trade memory feedback loop."""

from signal_memory.services.adjustments import AdjustmentApplier, AdjustmentGenerator
from signal_memory.services.dataset_builder import DatasetBuilder
from signal_memory.services.model_registry import ModelRegistry
from signal_memory.services.pattern_reflector import PatternReflector
from signal_memory.services.reflection_cycle import ReflectionSummary, run_reflection_cycle
from signal_memory.services.trade_journal import TradeJournal

__all__ = [
    "AdjustmentApplier",
    "AdjustmentGenerator",
    "DatasetBuilder",
    "ModelRegistry",
    "PatternReflector",
    "ReflectionSummary",
    "TradeJournal",
    "run_reflection_cycle",
]
