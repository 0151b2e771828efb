"""Tests for NormStats computation and window normalization."""

import numpy as np
import pytest
from pydantic import ValidationError

from signal_core.features import compute_norm_stats, denormalize_window, normalize_window
from signal_core.models.dataset import NormStats


def make_windows(samples: int = 8, seq_len: int = 5, n_features: int = 4, seed: int = 0):
    rng = np.random.default_rng(seed)
    return rng.normal(10, 3, size=(samples, seq_len, n_features))


class TestComputeNormStats:
    def test_population_statistics(self):
        windows = np.array([[[1.0, 10.0], [3.0, 10.0]]])
        stats = compute_norm_stats(windows)
        assert stats.means == pytest.approx((2.0, 10.0))
        # population std of [1, 3] is 1; constant column floors to 1
        assert stats.stds == pytest.approx((1.0, 1.0))

    def test_matches_numpy_over_all_rows(self):
        windows = make_windows()
        stats = compute_norm_stats(windows)
        rows = windows.reshape(-1, windows.shape[-1])
        np.testing.assert_allclose(stats.means, rows.mean(axis=0))
        np.testing.assert_allclose(stats.stds, rows.std(axis=0), rtol=1e-9)

    def test_constant_feature_has_unit_std(self):
        windows = np.full((3, 4, 2), 5.0)
        stats = compute_norm_stats(windows)
        assert stats.stds == (1.0, 1.0)
        assert np.all(normalize_window(windows, stats) == 0.0)

    def test_large_constant_feature_has_unit_std(self):
        windows = np.full((66, 5, 3), 12345.678)
        windows[:, :, 1] = 0.6
        windows[:, :, 2] = np.random.default_rng(1).normal(0, 1e-3, size=(66, 5))
        stats = compute_norm_stats(windows)
        assert stats.stds[:2] == (1.0, 1.0)
        assert stats.stds[2] == pytest.approx(1e-3, rel=0.2)

    def test_numerically_constant_feature_has_unit_std(self):
        # close * 0.02 / close is not bit-identical across rows
        closes = np.linspace(100, 300, 40)
        ratio = (closes * 0.02) / closes
        windows = ratio.reshape(8, 5, 1)
        stats = compute_norm_stats(windows)
        assert stats.stds == (1.0,)
        assert np.abs(normalize_window(windows, stats)).max() < 1e-12

    def test_nan_treated_as_zero(self):
        windows = np.array([[[np.nan], [2.0]]])
        stats = compute_norm_stats(windows)
        assert stats.means == pytest.approx((1.0,))

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            compute_norm_stats(np.empty((0, 5, 3)))

    def test_deterministic(self):
        windows = make_windows(seed=3)
        assert compute_norm_stats(windows) == compute_norm_stats(windows.copy())


class TestNormalizeWindow:
    def test_round_trip_recovers_window(self):
        windows = make_windows(seed=11)
        stats = compute_norm_stats(windows)
        window = windows[2]
        restored = denormalize_window(normalize_window(window, stats), stats)
        np.testing.assert_allclose(restored, window)

    def test_normalized_training_set_is_standardized(self):
        windows = make_windows(samples=50, seed=5)
        stats = compute_norm_stats(windows)
        rows = normalize_window(windows, stats).reshape(-1, windows.shape[-1])
        np.testing.assert_allclose(rows.mean(axis=0), 0.0, atol=1e-9)
        np.testing.assert_allclose(rows.std(axis=0), 1.0, atol=1e-9)

    def test_feature_count_mismatch_raises(self):
        stats = NormStats(means=(0.0, 0.0), stds=(1.0, 1.0))
        with pytest.raises(ValueError):
            normalize_window(np.zeros((5, 3)), stats)


class TestNormStats:
    def test_frozen(self):
        stats = NormStats(means=(0.0,), stds=(1.0,))
        with pytest.raises(ValidationError):
            stats.means = (1.0,)

    def test_rejects_nonpositive_std(self):
        with pytest.raises(ValidationError):
            NormStats(means=(0.0,), stds=(0.0,))

    def test_rejects_length_mismatch(self):
        with pytest.raises(ValueError):
            NormStats(means=(0.0, 1.0), stds=(1.0,))

    def test_json_round_trip(self):
        stats = NormStats(means=(1.5, -2.0), stds=(0.5, 3.0))
        assert NormStats.model_validate_json(stats.model_dump_json()) == stats
