"""Training and live prediction dataset construction.

Store reads are async; everything after the frames are loaded is pure,
synchronous numpy work. Normalization happens once, after every
symbol's windows are collected, so per-symbol work shares no state.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import TYPE_CHECKING

import numpy as np

from signal_core.features import (
    SNAPSHOT_FEATURES,
    TOTAL_FEATURES,
    FeatureExtractor,
    StaticFeatureExtractor,
    combine,
    compute_norm_stats,
    create_labeled_windows,
    feature_index,
    normalize_window,
)
from signal_core.models.config import TrainConfig
from signal_core.models.dataset import NormStats, PredictionInput, SymbolSeries, TrainingDataset
from signal_core.models.signal import Label
from signal_memory.storage.database import Database
from signal_memory.storage.market_repo import MarketDataRepository

if TYPE_CHECKING:
    from signal_memory.services.model_registry import ModelRegistry

logger = logging.getLogger(__name__)

# Open-ended upper bound for the live feature scan
_FAR_FUTURE = date(2099, 12, 31)


class DatasetBuilder:
    """Build leakage-free training sets and live scoring inputs."""

    def __init__(self, db: Database, config: TrainConfig | None = None):
        self.config = config or TrainConfig()
        self._market = MarketDataRepository(db)
        self._extractor = FeatureExtractor(self.config)
        self._static = StaticFeatureExtractor()

    async def build_training_dataset(self, start: date, end: date) -> TrainingDataset:
        """Windows and labels for every eligible symbol, normalized with one set of stats."""
        started = time.time()
        cfg = self.config
        symbols = await self._market.list_symbols(cfg.min_history, start, end)
        logger.info(f"{len(symbols)} symbols with >= {cfg.min_history} days history")

        all_windows: list[np.ndarray] = []
        all_labels: list[np.ndarray] = []
        all_symbols: list[str] = []
        all_dates: list[str] = []
        pit_fallbacks = 0

        for symbol in symbols:
            combined = await self._load_combined(symbol, start, end, point_in_time=cfg.point_in_time_fundamentals)
            if combined is None:
                continue
            series, matrix, fell_back = combined
            pit_fallbacks += int(fell_back)

            labeled = create_labeled_windows(
                series.dates,
                matrix,
                series.closes,
                cfg.seq_len,
                cfg.forward_days,
                cfg.buy_threshold,
                cfg.sell_threshold,
            )
            if not len(labeled):
                continue
            all_windows.append(labeled.windows)
            all_labels.append(labeled.labels)
            all_symbols.extend([symbol] * len(labeled))
            all_dates.extend(labeled.window_dates)

        if pit_fallbacks:
            logger.warning(
                f"{pit_fallbacks} symbols had no point-in-time fundamentals; "
                f"latest snapshot broadcast instead"
            )

        if not all_windows:
            raise ValueError(f"No training windows between {start} and {end}")

        windows = np.concatenate(all_windows)
        labels = np.concatenate(all_labels)

        class_counts = {
            label.name: int((labels == label.value).sum())
            for label in (Label.BUY, Label.HOLD, Label.SELL)
        }
        logger.info(
            f"{len(windows)} samples: BUY:{class_counts['BUY']} "
            f"HOLD:{class_counts['HOLD']} SELL:{class_counts['SELL']} "
            f"({time.time() - started:.1f}s)"
        )

        stats = compute_norm_stats(windows)
        X = normalize_window(windows, stats)

        return TrainingDataset(
            X=X,
            y=labels,
            symbols=all_symbols,
            dates=all_dates,
            stats=stats,
            class_counts=class_counts,
        )

    async def build_prediction_input(
        self, stats: NormStats, as_of: date | None = None
    ) -> PredictionInput:
        """Latest seq_len window per eligible symbol, normalized with frozen stats.

        stats must come from training (e.g. the model registry); they are
        never recomputed here. Fundamentals always come from the latest
        snapshot, since that is what is known at scoring time.
        """
        if stats.n_features != TOTAL_FEATURES:
            raise ValueError(f"Stats cover {stats.n_features} features, expected {TOTAL_FEATURES}")

        cfg = self.config
        end = as_of or _FAR_FUTURE
        symbols = await self._market.list_symbols(cfg.prediction_min_days, end=end)

        kept: list[str] = []
        windows: list[np.ndarray] = []
        snapshots: list[dict[str, float]] = []
        snapshot_idx = [feature_index(name) for name in SNAPSHOT_FEATURES]

        for symbol in symbols:
            combined = await self._load_combined(symbol, cfg.prediction_start, end, point_in_time=False)
            if combined is None:
                continue
            series, matrix, _ = combined
            if len(series) < cfg.seq_len:
                continue

            window = matrix[-cfg.seq_len :]
            kept.append(symbol)
            windows.append(normalize_window(window, stats))
            snapshots.append(
                {name: float(window[-1, idx]) for name, idx in zip(SNAPSHOT_FEATURES, snapshot_idx)}
            )

        X = (
            np.stack(windows)
            if windows
            else np.empty((0, cfg.seq_len, TOTAL_FEATURES), dtype=np.float64)
        )
        logger.info(f"{len(kept)} symbols with sufficient history for prediction")
        return PredictionInput(symbols=kept, X=X, snapshots=snapshots)

    async def build_prediction_input_for_model(
        self, registry: "ModelRegistry", model_id: str
    ) -> PredictionInput:
        """Prediction input normalized with the stats frozen in the registry."""
        meta = await registry.get_model_meta(model_id)
        if meta is None or meta.norm_stats is None:
            raise KeyError(f"Model {model_id!r} has no registered norm stats")
        return await self.build_prediction_input(meta.norm_stats)

    async def _load_combined(
        self, symbol: str, start: date, end: date, point_in_time: bool
    ) -> tuple[SymbolSeries, np.ndarray, bool] | None:
        """Extract time-series features and append the static block: [N, 25].

        The flag is True when point-in-time history was requested but
        missing, so the latest snapshot was broadcast instead.
        """
        frame = await self._market.get_symbol_frame(symbol, start, end)
        series = self._extractor.extract(symbol, frame)
        if series is None:
            return None

        static = None
        fell_back = False
        if point_in_time:
            history = await self._market.get_fundamentals_history(symbol)
            if not history.empty:
                static = self._static.point_in_time(history, series.dates)
            else:
                fell_back = True
        if static is None:
            latest = await self._market.get_latest_fundamentals(symbol)
            static = self._static.broadcast(self._static.vector(latest), len(series))

        return series, combine(series.features, static), fell_back
