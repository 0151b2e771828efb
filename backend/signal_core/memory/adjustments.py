"""Adjustment proposal and composition rules (L3 cold memory).

Proposal:
- win_rate < threshold with enough samples → confidence_scale,
  scale = max(scale floor, win_rate / threshold) rounded to 2 decimals
- avg_return < suppress threshold with 2x the samples → signal_suppress

Composition of applied adjustments per signal key:
- scale: minimum over confidence_scale rows (1.0 when none)
- suppress: OR over signal_suppress rows
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from signal_core.models.config import MemoryConfig
from signal_core.models.memory import (
    Adjustment,
    ConfidenceScale,
    Pattern,
    PatternCondition,
    SignalSuppress,
)
from signal_core.models.signal import Signal

ALL_KEY = "all"


def propose_adjustments(pattern: Pattern, config: MemoryConfig | None = None) -> list[Adjustment]:
    """Zero, one or two proposals for a pattern."""
    config = config or MemoryConfig()
    if pattern.id is None:
        raise ValueError(f"Pattern '{pattern.name}' has no id; store it before proposing")

    proposals: list[Adjustment] = []
    threshold = config.pattern_win_rate_threshold
    min_samples = config.min_samples_for_pattern

    if pattern.win_rate < threshold and pattern.sample_count >= min_samples:
        scale = round(max(config.confidence_scale_min, pattern.win_rate / threshold), 2)
        proposals.append(
            Adjustment(
                pattern_id=pattern.id,
                payload=ConfidenceScale(scale=scale),
                reason=(
                    f"Pattern '{pattern.name}' win rate {pattern.win_rate * 100:.1f}% "
                    f"< {threshold * 100:g}% threshold"
                ),
            )
        )

    if (
        pattern.avg_return < config.suppress_return_threshold
        and pattern.sample_count >= min_samples * config.suppress_sample_multiplier
    ):
        proposals.append(
            Adjustment(
                pattern_id=pattern.id,
                payload=SignalSuppress(suppress=True),
                reason=(
                    f"Pattern '{pattern.name}' avg return {pattern.avg_return * 100:.2f}% "
                    f"is strongly negative"
                ),
            )
        )

    return proposals


@dataclass
class AdjustmentEffect:
    """Composed effect for one signal key."""

    scale: float = 1.0
    suppress: bool = False

    def merge(self, other: "AdjustmentEffect") -> "AdjustmentEffect":
        return AdjustmentEffect(
            scale=min(self.scale, other.scale),
            suppress=self.suppress or other.suppress,
        )


class ActiveAdjustments:
    """Applied adjustments grouped by signal key ('BUY', 'SELL', ..., 'all')."""

    def __init__(self, effects: dict[str, AdjustmentEffect] | None = None):
        self.effects: dict[str, AdjustmentEffect] = dict(effects or {})

    def __len__(self) -> int:
        return len(self.effects)

    def __contains__(self, key: object) -> bool:
        return key in self.effects

    def get(self, key: str) -> AdjustmentEffect | None:
        return self.effects.get(key)

    def items(self):
        return self.effects.items()

    def for_signal(self, signal: Signal | str) -> AdjustmentEffect:
        """Effect for a signal, merged with adjustments that apply to all signals."""
        key = signal.value if isinstance(signal, Signal) else signal
        effect = self.effects.get(key, AdjustmentEffect())
        if ALL_KEY in self.effects:
            effect = effect.merge(self.effects[ALL_KEY])
        return effect

    def apply(self, signal: Signal | str, confidence: float) -> float | None:
        """Scaled confidence, or None when the signal is suppressed."""
        effect = self.for_signal(signal)
        if effect.suppress:
            return None
        return confidence * effect.scale


def compose_adjustments(
    rows: Iterable[tuple[PatternCondition, ConfidenceScale | SignalSuppress]],
) -> ActiveAdjustments:
    """Fold (condition, payload) pairs into per-key effects."""
    effects: dict[str, AdjustmentEffect] = {}
    for condition, payload in rows:
        effect = effects.setdefault(condition.key, AdjustmentEffect())
        if isinstance(payload, ConfidenceScale):
            effect.scale = min(effect.scale, payload.scale)
        elif isinstance(payload, SignalSuppress):
            effect.suppress = effect.suppress or payload.suppress
    return ActiveAdjustments(effects)
