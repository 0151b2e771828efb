"""Tests for PatternMiner sample gating and statistics."""

import pytest

from signal_core.memory import FeatureRule, PatternMiner
from signal_core.models.config import MemoryConfig
from signal_core.models.signal import ResolvedTrade, Signal

CONFIG = MemoryConfig(min_samples_for_pattern=10)


def make_trade(
    signal: Signal = Signal.BUY,
    correct: bool = True,
    ret: float | None = None,
    confidence: float = 0.6,
    snapshot: dict | None = None,
) -> ResolvedTrade:
    if ret is None:
        ret = 0.02 if correct else -0.02
        if signal == Signal.SELL:
            ret = -ret
    return ResolvedTrade(
        signal=signal,
        confidence=confidence,
        outcome_return=ret,
        is_correct=correct,
        feature_snapshot=snapshot,
    )


def by_name(patterns):
    return {p.name: p for p in patterns}


class TestGating:
    def test_too_few_trades_overall(self):
        trades = [make_trade() for _ in range(9)]
        assert PatternMiner(CONFIG).mine(trades) == []

    def test_signal_subset_below_gate_emits_nothing(self):
        trades = [make_trade(Signal.BUY) for _ in range(8)]
        trades += [make_trade(Signal.SELL) for _ in range(1992)]
        patterns = by_name(PatternMiner(CONFIG).mine(trades))
        assert not any(name.startswith("BUY_") for name in patterns)
        assert "SELL_baseline" in patterns

    def test_twelve_buys_emit_baseline(self):
        trades = [make_trade(Signal.BUY, correct=i < 9) for i in range(12)]
        trades += [make_trade(Signal.SELL) for _ in range(1988)]
        baseline = by_name(PatternMiner(CONFIG).mine(trades))["BUY_baseline"]
        assert baseline.sample_count == 12
        assert baseline.win_rate == pytest.approx(9 / 12)
        assert baseline.signal_type == "BUY"
        assert baseline.condition.signal == "BUY"

    def test_hold_signals_are_not_mined(self):
        trades = [make_trade(Signal.HOLD) for _ in range(40)]
        assert PatternMiner(CONFIG).mine(trades) == []


class TestStatistics:
    def test_avg_return(self):
        trades = [make_trade(Signal.BUY, ret=0.01 * i, correct=i > 0) for i in range(10)]
        pattern = by_name(PatternMiner(CONFIG).mine(trades))["BUY_baseline"]
        assert pattern.avg_return == pytest.approx(0.045)
        assert pattern.win_rate == pytest.approx(0.9)


class TestConfidenceStrata:
    def test_high_and_low_confidence(self):
        trades = [make_trade(confidence=0.7, correct=True) for _ in range(10)]
        trades += [make_trade(confidence=0.45, correct=False) for _ in range(10)]
        trades += [make_trade(confidence=0.6) for _ in range(5)]

        patterns = by_name(PatternMiner(CONFIG).mine(trades))

        high = patterns["BUY_high_confidence"]
        assert high.sample_count == 10  # 0.7 is inclusive
        assert high.win_rate == 1.0
        assert high.condition.confidence_min == 0.7

        low = patterns["BUY_low_confidence"]
        assert low.sample_count == 10
        assert low.win_rate == 0.0
        assert low.condition.confidence_max == 0.5

        assert patterns["BUY_baseline"].sample_count == 25


class TestFeatureRules:
    def test_default_rsi_overbought(self):
        trades = [make_trade(snapshot={"rsi14": 0.8}, correct=False) for _ in range(10)]
        trades += [make_trade(snapshot={"rsi14": 0.5}) for _ in range(10)]
        trades += [make_trade(snapshot=None) for _ in range(5)]

        pattern = by_name(PatternMiner(CONFIG).mine(trades))["BUY_rsi_overbought"]
        assert pattern.sample_count == 10
        assert pattern.win_rate == 0.0
        assert pattern.condition.to_json() == '{"rsi14_min": 0.7, "signal": "BUY"}'

    def test_threshold_is_strict(self):
        trades = [make_trade(snapshot={"rsi14": 0.7}) for _ in range(20)]
        patterns = by_name(PatternMiner(CONFIG).mine(trades))
        assert "BUY_rsi_overbought" not in patterns

    def test_custom_below_rule(self):
        rule = FeatureRule(label="rsi_oversold", signal=Signal.SELL, feature="rsi14", threshold=0.3, above=False)
        trades = [make_trade(Signal.SELL, snapshot={"rsi14": 0.2}) for _ in range(10)]
        patterns = by_name(PatternMiner(CONFIG, feature_rules=[rule]).mine(trades))

        pattern = patterns["SELL_rsi_oversold"]
        assert pattern.sample_count == 10
        assert pattern.condition.feature_max == 0.3
        assert "BUY_rsi_overbought" not in patterns
