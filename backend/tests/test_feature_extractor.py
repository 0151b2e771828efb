"""Tests for FeatureExtractor and StaticFeatureExtractor."""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from signal_core.features import (
    N_STATIC_FEATURES,
    N_TS_FEATURES,
    TIME_SERIES_FEATURES,
    FeatureExtractor,
    StaticFeatureExtractor,
    combine,
)
from signal_core.models.config import TrainConfig

CONFIG = TrainConfig(seq_len=10, forward_days=2, history_margin=10)  # needs 22 usable bars


def col(name: str) -> int:
    return TIME_SERIES_FEATURES.index(name)


def make_frame(n: int = 30, **overrides) -> pd.DataFrame:
    """Joined frame with sensible defaults; overrides replace whole columns."""
    data = {
        "date": pd.bdate_range("2024-01-01", periods=n),
        "close": [100.0 + i for i in range(n)],
        "volume": [1000.0] * n,
        "change_pct": [1.0] * n,
        "ma5": [100.0] * n,
        "ma20": [100.0] * n,
        "ma60": [100.0] * n,
        "rsi14": [60.0] * n,
        "macd_diff": [0.2] * n,
        "macd_dea": [0.1] * n,
        "kd_k": [80.0] * n,
        "kd_d": [70.0] * n,
        "atr14": [2.0] * n,
        "foreign_inv": [500.0] * n,
        "invest_trust": [-100.0] * n,
        "dealer": [0.0] * n,
        "margin_net": [5.0] * n,
        "short_net": [-3.0] * n,
        "market_close": [10000.0] * n,
        "ma20_breadth": [40.0] * n,
        "ma60_breadth": [30.0] * n,
    }
    data.update(overrides)
    return pd.DataFrame(data)


def extract(frame: pd.DataFrame):
    return FeatureExtractor(CONFIG).extract("2330", frame)


# ---------------------------------------------------------------------------
# Shape and history gate
# ---------------------------------------------------------------------------

class TestShape:
    def test_nineteen_features_per_day(self):
        series = extract(make_frame(30))
        assert series.features.shape == (30, N_TS_FEATURES)
        assert len(series.dates) == len(series.closes) == 30

    def test_dates_ascending_iso(self):
        frame = make_frame(30).iloc[::-1]
        series = extract(frame)
        assert series.dates[0] == "2024-01-01"
        assert series.dates == sorted(series.dates)

    def test_insufficient_history_returns_none(self):
        assert extract(make_frame(21)) is None

    def test_exactly_enough_history(self):
        assert extract(make_frame(22)) is not None

    def test_empty_frame_returns_none(self):
        assert extract(make_frame(0)) is None


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

class TestValues:
    def test_scaled_oscillators(self):
        row = extract(make_frame(30)).features[0]
        assert row[col("rsi14")] == pytest.approx(0.6)
        assert row[col("kd_k")] == pytest.approx(0.8)
        assert row[col("kd_d")] == pytest.approx(0.7)
        assert row[col("breadth_20")] == pytest.approx(0.4)
        assert row[col("breadth_60")] == pytest.approx(0.3)

    def test_ma_ratios(self):
        frame = make_frame(30, ma5=[50.0] * 30)
        row = extract(frame).features[0]
        assert row[col("ma5_ratio")] == pytest.approx(2.0)
        assert row[col("ma20_ratio")] == pytest.approx(1.0)

    def test_atr_ratio(self):
        row = extract(make_frame(30)).features[0]
        assert row[col("atr_ratio")] == pytest.approx(2.0 / 100.0)

    def test_flows_normalized_by_volume(self):
        row = extract(make_frame(30)).features[0]
        assert row[col("foreign_norm")] == pytest.approx(0.5)
        assert row[col("trust_norm")] == pytest.approx(-0.1)
        assert row[col("dealer_norm")] == pytest.approx(0.0)

    def test_market_return_from_previous_close(self):
        market = [10000.0] * 30
        market[1] = 10200.0
        features = extract(make_frame(30, market_close=market)).features
        assert features[0, col("market_ret")] == pytest.approx(0.0)
        assert features[1, col("market_ret")] == pytest.approx(2.0)


# ---------------------------------------------------------------------------
# Neutral defaults for missing inputs
# ---------------------------------------------------------------------------

class TestNeutralDefaults:
    def test_only_prices_available(self):
        frame = pd.DataFrame({
            "date": pd.bdate_range("2024-01-01", periods=30),
            "close": [50.0] * 30,
        })
        row = extract(frame).features[5]

        assert row[col("close_ret")] == 0.0
        assert row[col("ma5_ratio")] == 1.0
        assert row[col("ma60_ratio")] == 1.0
        assert row[col("rsi14")] == pytest.approx(0.5)
        assert row[col("kd_k")] == pytest.approx(0.5)
        assert row[col("atr_ratio")] == 0.0
        assert row[col("vol_ratio")] == pytest.approx(1.0)
        assert row[col("foreign_norm")] == 0.0
        assert row[col("market_ret")] == 0.0
        assert row[col("breadth_20")] == pytest.approx(0.5)

    def test_null_values_do_not_raise(self):
        rsi = [None] * 30
        ma20 = [0.0] * 30
        features = extract(make_frame(30, rsi14=rsi, ma20=ma20)).features
        assert np.isfinite(features).all()
        assert features[0, col("rsi14")] == pytest.approx(0.5)
        assert features[0, col("ma20_ratio")] == 1.0


# ---------------------------------------------------------------------------
# Causality
# ---------------------------------------------------------------------------

class TestCausality:
    def test_volume_average_is_trailing(self):
        volume = [100.0] * 30
        volume[1] = 300.0
        features = extract(make_frame(30, volume=volume)).features
        assert features[0, col("vol_ratio")] == pytest.approx(1.0)
        # (100 + 300) / 2 = 200
        assert features[1, col("vol_ratio")] == pytest.approx(1.5)

    def test_future_bars_do_not_change_past_rows(self):
        base = make_frame(30)
        altered_volume = list(base["volume"])
        altered_volume[-1] = 1e9
        altered = make_frame(30, volume=altered_volume, market_close=[10000.0] * 29 + [1.0])

        a = extract(base).features
        b = extract(altered).features
        np.testing.assert_array_equal(a[:-1], b[:-1])

    def test_nonpositive_closes_are_skipped(self):
        closes = [100.0 + i for i in range(30)]
        closes[5] = 0.0
        closes[6] = -1.0
        series = extract(make_frame(30, close=closes))
        assert len(series) == 28
        assert (series.closes > 0).all()
        assert "2024-01-08" not in series.dates  # index 5


# ---------------------------------------------------------------------------
# Static features
# ---------------------------------------------------------------------------

class TestStaticFeatures:
    def test_absent_snapshot_is_zero(self):
        vec = StaticFeatureExtractor().vector(None)
        np.testing.assert_array_equal(vec, np.zeros(N_STATIC_FEATURES))

    def test_vector_order_and_null_fields(self):
        snapshot = {
            "pe": 15.0,
            "pb": 2.0,
            "yield": 3.5,
            "revenue_yoy": None,
            "gross_margin": 45.0,
            "debt_ratio": 30.0,
        }
        vec = StaticFeatureExtractor().vector(snapshot)
        np.testing.assert_array_equal(vec, [15.0, 2.0, 3.5, 0.0, 45.0, 30.0])

    def test_broadcast_repeats_vector(self):
        vec = np.arange(N_STATIC_FEATURES, dtype=float)
        out = StaticFeatureExtractor().broadcast(vec, 4)
        assert out.shape == (4, N_STATIC_FEATURES)
        assert (out == vec).all()

    def test_point_in_time_uses_latest_prior_snapshot(self):
        history = pd.DataFrame({
            "as_of_date": ["2024-01-10", "2024-02-01"],
            "pe": [10.0, 20.0],
            "pb": [1.0, 2.0],
            "yield": [0.0, 0.0],
            "revenue_yoy": [0.0, 0.0],
            "gross_margin": [0.0, 0.0],
            "debt_ratio": [0.0, 0.0],
        })
        dates = ["2024-01-05", "2024-01-10", "2024-01-31", "2024-02-02"]
        out = StaticFeatureExtractor().point_in_time(history, dates)
        assert out[:, 0].tolist() == [0.0, 10.0, 10.0, 20.0]
        assert out[:, 1].tolist() == [0.0, 1.0, 1.0, 2.0]

    def test_point_in_time_with_store_dates(self):
        # as_of_date arrives as datetime.date from the store, bar dates as ISO strings
        history = pd.DataFrame({
            "as_of_date": [date(2024, 1, 10), date(2024, 2, 1)],
            "pe": [10.0, 20.0],
        })
        dates = ["2024-01-09", "2024-01-10", "2024-02-05"]
        out = StaticFeatureExtractor().point_in_time(history, dates)
        assert out[:, 0].tolist() == [0.0, 10.0, 20.0]
        assert (out[:, 1:] == 0).all()

    def test_point_in_time_without_history(self):
        out = StaticFeatureExtractor().point_in_time(pd.DataFrame(), ["2024-01-01"])
        assert out.shape == (1, N_STATIC_FEATURES)
        assert (out == 0).all()

    def test_combine_appends_static_block(self):
        ts = np.ones((3, N_TS_FEATURES))
        static = np.full((3, N_STATIC_FEATURES), 7.0)
        out = combine(ts, static)
        assert out.shape == (3, N_TS_FEATURES + N_STATIC_FEATURES)
        assert (out[:, N_TS_FEATURES:] == 7.0).all()

    def test_combine_rejects_mismatched_rows(self):
        with pytest.raises(ValueError):
            combine(np.ones((3, N_TS_FEATURES)), np.ones((2, N_STATIC_FEATURES)))
