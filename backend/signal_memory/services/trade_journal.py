"""Trade journal (L1 hot memory): record signals, resolve outcomes."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Sequence

import numpy as np

from signal_core.memory.adjustments import ActiveAdjustments
from signal_core.memory.outcome import resolve_outcome
from signal_core.models.config import MemoryConfig
from signal_core.models.signal import JournalEntry, Signal
from signal_memory.storage.database import Database
from signal_memory.storage.journal_repo import JournalRepository
from signal_memory.storage.market_repo import MarketDataRepository

logger = logging.getLogger(__name__)


class TradeJournal:
    """Append-only signal journal with one-time outcome backfill.

    fill_outcomes() is a maintenance job: run one invocation at a time.
    Repeated runs are idempotent because only unresolved rows are updated.
    """

    def __init__(self, db: Database, config: MemoryConfig | None = None):
        self.config = config or MemoryConfig()
        self._db = db
        self._journal = JournalRepository(db)
        self._market = MarketDataRepository(db)

    async def record_decision(self, entry: JournalEntry) -> int:
        """Append one signal. Several models may log the same symbol/day."""
        return await self._journal.insert(entry)

    async def fill_outcomes(self, forward_days: int, as_of: date | None = None) -> int:
        """Backfill realized returns for matured signals.

        Candidates are unresolved rows at least forward_days days old.
        Rows whose outcome bar does not exist yet stay unresolved and are
        retried on the next run. Returns the number of rows filled.
        """
        as_of = as_of or date.today()
        cutoff = as_of - timedelta(days=forward_days)
        filled = 0

        async with self._db.session() as session:
            pending = await self._journal.get_pending(cutoff, session=session)
            for entry in pending:
                bars = await self._market.get_bars_from(
                    entry.symbol, entry.signal_date, forward_days, session=session
                )
                resolution = resolve_outcome(
                    entry.signal, bars, forward_days, hold_band=self.config.hold_band
                )
                if resolution is None:
                    continue
                if await self._journal.set_outcome(entry.id, resolution, session=session):
                    filled += 1

        logger.info(f"Filled {filled} outcomes ({len(pending)} pending, cutoff {cutoff})")
        return filled

    async def record_predictions(
        self,
        model_id: str,
        signal_date: date,
        symbols: Sequence[str],
        probabilities: np.ndarray,
        snapshots: Sequence[dict[str, float]] | None = None,
        adjustments: ActiveAdjustments | None = None,
    ) -> list[JournalEntry]:
        """Journal scorer output.

        probabilities is [n, 3] in SELL/HOLD/BUY order. The argmax class is
        the signal; active adjustments drop suppressed signals and scale
        confidence. Only non-HOLD signals above record_min_confidence are
        journaled. Returns the journaled entries.
        """
        probs = np.asarray(probabilities, dtype=np.float64)
        if probs.shape != (len(symbols), 3):
            raise ValueError(f"Expected probabilities of shape ({len(symbols)}, 3), got {probs.shape}")
        adjustments = adjustments or ActiveAdjustments()

        entries: list[JournalEntry] = []
        for i, symbol in enumerate(symbols):
            p = probs[i]
            signal = Signal.from_label(int(np.argmax(p)))
            confidence = adjustments.apply(signal, float(p.max()))
            if confidence is None:
                logger.debug(f"{symbol}: {signal.value} suppressed")
                continue
            if signal == Signal.HOLD or confidence <= self.config.record_min_confidence:
                continue

            entries.append(
                JournalEntry(
                    model_id=model_id,
                    symbol=symbol,
                    signal_date=signal_date,
                    signal=signal,
                    confidence=confidence,
                    feature_snapshot=dict(snapshots[i]) if snapshots else None,
                    reasoning=(
                        f"P(SELL)={p[0] * 100:.1f}% "
                        f"P(HOLD)={p[1] * 100:.1f}% "
                        f"P(BUY)={p[2] * 100:.1f}%"
                    ),
                )
            )

        await self._journal.insert_many(entries)
        logger.info(f"Journaled {len(entries)} of {len(symbols)} predictions for {model_id}")
        return entries
