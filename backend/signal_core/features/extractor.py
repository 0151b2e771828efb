"""Per-day time-series feature extraction.

Input is the joined price / indicator / chip / margin / market / breadth
frame for one symbol, ascending by date (see MarketDataRepository).
Every rolling computation looks only at bars up to and including the
current bar.

Missing inputs fall back to neutral values instead of raising:
- MA ratios → 1
- RSI / KD / breadth → 50 (0.5 after scaling)
- volume → 1
- everything else → 0
"""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd

from signal_core.models.config import TrainConfig
from signal_core.models.dataset import SymbolSeries

logger = logging.getLogger(__name__)

VOLUME_WINDOW = 20

# Columns expected in the joined frame
FRAME_COLUMNS: tuple[str, ...] = (
    "date",
    "close",
    "volume",
    "change_pct",
    "ma5",
    "ma20",
    "ma60",
    "rsi14",
    "macd_diff",
    "macd_dea",
    "kd_k",
    "kd_d",
    "atr14",
    "foreign_inv",
    "invest_trust",
    "dealer",
    "margin_net",
    "short_net",
    "market_close",
    "ma20_breadth",
    "ma60_breadth",
)


def _column(df: pd.DataFrame, name: str) -> pd.Series:
    if name not in df.columns:
        return pd.Series(np.nan, index=df.index, dtype=np.float64)
    return pd.to_numeric(df[name], errors="coerce").astype(np.float64)


def _or_default(s: pd.Series, default: float) -> pd.Series:
    """Replace missing and zero values with a neutral default."""
    return s.fillna(0.0).replace(0.0, default)


def _ratio(close: pd.Series, base: pd.Series) -> pd.Series:
    """close / base, 1 when base is missing or zero."""
    return (close / base.replace(0.0, np.nan)).fillna(1.0)


class FeatureExtractor:
    """Build the 19 causal time-series features for one symbol."""

    def __init__(self, config: TrainConfig | None = None):
        self.config = config or TrainConfig()

    def extract(self, symbol: str, frame: pd.DataFrame) -> SymbolSeries | None:
        """Extract features from a joined frame.

        Returns None when fewer than seq_len + forward_days + history_margin
        usable bars remain (insufficient history); callers skip the symbol.
        """
        if frame is None or frame.empty:
            return None

        df = frame.sort_values("date", kind="stable").reset_index(drop=True)
        close = _column(df, "close")

        # Trailing 20-bar average volume, current bar included
        volume = _or_default(_column(df, "volume"), 1.0)
        vol_avg = volume.rolling(VOLUME_WINDOW, min_periods=1).mean()
        vol_avg = _or_default(vol_avg, 1.0)

        # Index daily return from the previous bar's close
        market = _column(df, "market_close").fillna(0.0)
        prev_market = market.shift(1).fillna(0.0)
        market_ret = pd.Series(
            np.where(
                prev_market > 0,
                (market - prev_market) / prev_market.where(prev_market > 0, 1.0) * 100,
                0.0,
            ),
            index=df.index,
        )

        atr = _column(df, "atr14").fillna(0.0)

        columns = [
            _column(df, "change_pct").fillna(0.0),
            _ratio(close, _column(df, "ma5")),
            _ratio(close, _column(df, "ma20")),
            _ratio(close, _column(df, "ma60")),
            _or_default(_column(df, "rsi14"), 50.0) / 100,
            _column(df, "macd_diff").fillna(0.0),
            _column(df, "macd_dea").fillna(0.0),
            _or_default(_column(df, "kd_k"), 50.0) / 100,
            _or_default(_column(df, "kd_d"), 50.0) / 100,
            (atr / close.replace(0.0, np.nan)).where(atr != 0, 0.0).fillna(0.0),
            volume / vol_avg,
            _column(df, "foreign_inv").fillna(0.0) / volume,
            _column(df, "invest_trust").fillna(0.0) / volume,
            _column(df, "dealer").fillna(0.0) / volume,
            _column(df, "margin_net").fillna(0.0),
            _column(df, "short_net").fillna(0.0),
            market_ret,
            _or_default(_column(df, "ma20_breadth"), 50.0) / 100,
            _or_default(_column(df, "ma60_breadth"), 50.0) / 100,
        ]
        features = np.column_stack([c.to_numpy(dtype=np.float64) for c in columns])

        # Bars without a positive close carry no usable price
        usable = (close > 0).to_numpy()
        if int(usable.sum()) < self.config.min_usable_length:
            logger.debug(
                f"{symbol}: {int(usable.sum())} usable bars < "
                f"{self.config.min_usable_length}, skipping"
            )
            return None

        dates = pd.to_datetime(df["date"]).dt.strftime("%Y-%m-%d")
        return SymbolSeries(
            symbol=symbol,
            dates=dates[usable].tolist(),
            closes=close.to_numpy(dtype=np.float64)[usable],
            features=features[usable],
        )
