"""Trade memory rules: outcome scoring, pattern mining, adjustments."""

from signal_core.memory.adjustments import (
    ActiveAdjustments,
    AdjustmentEffect,
    compose_adjustments,
    propose_adjustments,
)
from signal_core.memory.outcome import OutcomeResolution, is_correct, resolve_outcome
from signal_core.memory.reflection import (
    DEFAULT_FEATURE_RULES,
    FeatureRule,
    PatternMiner,
)

__all__ = [
    "ActiveAdjustments",
    "AdjustmentEffect",
    "DEFAULT_FEATURE_RULES",
    "FeatureRule",
    "OutcomeResolution",
    "PatternMiner",
    "compose_adjustments",
    "is_correct",
    "propose_adjustments",
    "resolve_outcome",
]
