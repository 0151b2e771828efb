"""Pattern mining over resolved journal rows (L2 warm memory).

Three predicate families per signal type, each gated on its own subset
size so a pattern is only emitted once it has min_samples_for_pattern
trades behind it:

1. Baseline: every BUY (or SELL) signal
2. Confidence strata: confidence >= high_confidence / < low_confidence
3. Feature conditions: a FeatureRule on the recorded feature snapshot

Pattern names are stable so the store can upsert by name.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from signal_core.models.config import MemoryConfig
from signal_core.models.memory import Pattern, PatternCondition
from signal_core.models.signal import ResolvedTrade, Signal

logger = logging.getLogger(__name__)

MINED_SIGNALS: tuple[Signal, ...] = (Signal.BUY, Signal.SELL)


@dataclass(frozen=True)
class FeatureRule:
    """Condition on one recorded feature value.

    above=True matches snapshot[feature] > threshold,
    above=False matches snapshot[feature] < threshold.
    """

    label: str
    signal: Signal
    feature: str
    threshold: float
    above: bool = True

    @property
    def pattern_name(self) -> str:
        return f"{self.signal.value}_{self.label}"

    @property
    def condition(self) -> PatternCondition:
        if self.above:
            return PatternCondition(
                signal=self.signal.value, feature=self.feature, feature_min=self.threshold
            )
        return PatternCondition(
            signal=self.signal.value, feature=self.feature, feature_max=self.threshold
        )

    def matches(self, trade: ResolvedTrade) -> bool:
        if trade.signal != self.signal or not trade.feature_snapshot:
            return False
        value = trade.feature_snapshot.get(self.feature)
        if not isinstance(value, (int, float)):
            return False
        return value > self.threshold if self.above else value < self.threshold


# RSI overheated while the model says BUY
DEFAULT_FEATURE_RULES: tuple[FeatureRule, ...] = (
    FeatureRule(label="rsi_overbought", signal=Signal.BUY, feature="rsi14", threshold=0.7),
)


class PatternMiner:
    """Compute reliability patterns from resolved trades."""

    def __init__(
        self,
        config: MemoryConfig | None = None,
        feature_rules: Iterable[FeatureRule] = DEFAULT_FEATURE_RULES,
    ):
        self.config = config or MemoryConfig()
        self.feature_rules = tuple(feature_rules)

    def mine(self, trades: Sequence[ResolvedTrade]) -> list[Pattern]:
        """Return every pattern whose subset clears the sample gate.

        Returns an empty list when the whole sample is too small.
        """
        min_samples = self.config.min_samples_for_pattern
        if len(trades) < min_samples:
            logger.info(f"Only {len(trades)} completed trades, need >= {min_samples}")
            return []

        patterns: list[Pattern] = []

        # Baseline per signal type
        for sig in MINED_SIGNALS:
            subset = [t for t in trades if t.signal == sig]
            self._emit(patterns, f"{sig.value}_baseline", PatternCondition(signal=sig.value), sig, subset)

        # Confidence strata
        hi, lo = self.config.high_confidence, self.config.low_confidence
        for sig in MINED_SIGNALS:
            subset = [t for t in trades if t.signal == sig]
            self._emit(
                patterns,
                f"{sig.value}_high_confidence",
                PatternCondition(signal=sig.value, confidence_min=hi),
                sig,
                [t for t in subset if t.confidence >= hi],
            )
            self._emit(
                patterns,
                f"{sig.value}_low_confidence",
                PatternCondition(signal=sig.value, confidence_max=lo),
                sig,
                [t for t in subset if t.confidence < lo],
            )

        # Feature-conditioned
        for rule in self.feature_rules:
            self._emit(
                patterns,
                rule.pattern_name,
                rule.condition,
                rule.signal,
                [t for t in trades if rule.matches(t)],
            )

        return patterns

    def _emit(
        self,
        out: list[Pattern],
        name: str,
        condition: PatternCondition,
        signal: Signal,
        subset: list[ResolvedTrade],
    ) -> None:
        if len(subset) < self.config.min_samples_for_pattern:
            return
        correct = sum(1 for t in subset if t.is_correct)
        out.append(
            Pattern(
                name=name,
                condition=condition,
                signal_type=signal.value,
                win_rate=correct / len(subset),
                avg_return=sum(t.outcome_return for t in subset) / len(subset),
                sample_count=len(subset),
            )
        )
