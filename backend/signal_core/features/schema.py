"""Fixed feature order shared by extraction, normalization and journaling."""

from __future__ import annotations

# Time-varying features, one row per trading day
TIME_SERIES_FEATURES: tuple[str, ...] = (
    # Technical
    "close_ret",     # daily change %
    "ma5_ratio",     # close / MA5
    "ma20_ratio",    # close / MA20
    "ma60_ratio",    # close / MA60
    "rsi14",         # RSI(14) scaled to 0-1
    "macd_diff",
    "macd_dea",
    "kd_k",          # 0-1
    "kd_d",          # 0-1
    "atr_ratio",     # ATR / close
    "vol_ratio",     # volume / trailing 20-day average volume
    # Institutional flow and margin
    "foreign_norm",  # foreign net / volume
    "trust_norm",    # investment trust net / volume
    "dealer_norm",   # dealer net / volume
    "margin_net",
    "short_net",
    # Market environment
    "market_ret",    # index daily return %
    "breadth_20",    # share above MA20, 0-1
    "breadth_60",    # share above MA60, 0-1
)

# Slow-moving fundamentals, broadcast to every timestep of a symbol
STATIC_FEATURES: tuple[str, ...] = (
    "pe",
    "pb",
    "yield",
    "revenue_yoy",
    "gross_margin",
    "debt_ratio",
)

FEATURE_NAMES: tuple[str, ...] = TIME_SERIES_FEATURES + STATIC_FEATURES

N_TS_FEATURES = len(TIME_SERIES_FEATURES)    # 19
N_STATIC_FEATURES = len(STATIC_FEATURES)     # 6
TOTAL_FEATURES = len(FEATURE_NAMES)          # 25

# Raw last-day values recorded with each journaled signal
SNAPSHOT_FEATURES: tuple[str, ...] = ("rsi14", "foreign_norm", "breadth_20")


def feature_index(name: str) -> int:
    """Position of a named feature in the combined 25-dim vector."""
    return FEATURE_NAMES.index(name)
