"""Trade journal (L1) repository."""

from __future__ import annotations

import json
import logging
from datetime import date

from sqlalchemy import func, insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from signal_core.memory.outcome import OutcomeResolution
from signal_core.models.signal import JournalEntry, ResolvedTrade, Signal
from signal_memory.storage.database import Database, TradeJournalTable

logger = logging.getLogger(__name__)


def _parse_snapshot(row_id: int, raw: str | None) -> dict | None:
    """Decode features_json; malformed values are dropped with a warning."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning(f"Journal row {row_id}: malformed features_json skipped")
        return None
    if not isinstance(data, dict):
        logger.warning(f"Journal row {row_id}: features_json is not an object, skipped")
        return None
    return data


class JournalRepository:
    """Append-only journal of emitted signals."""

    def __init__(self, db: Database):
        self._db = db

    async def insert(self, entry: JournalEntry, session: AsyncSession | None = None) -> int:
        """Append one entry and return its id. No uniqueness constraint."""
        stmt = (
            insert(TradeJournalTable)
            .values(**self._entry_values(entry))
            .returning(TradeJournalTable.id)
        )
        async with self._db.use_session(session) as s:
            result = await s.execute(stmt)
            return result.scalar_one()

    async def insert_many(self, entries: list[JournalEntry]) -> int:
        """Append a batch in one transaction. Returns number inserted."""
        if not entries:
            return 0
        async with self._db.session() as session:
            await session.execute(
                insert(TradeJournalTable),
                [self._entry_values(e) for e in entries],
            )
        return len(entries)

    async def get_pending(
        self, cutoff: date, session: AsyncSession | None = None
    ) -> list[JournalEntry]:
        """Unresolved entries whose signal_date is on or before cutoff."""
        t = TradeJournalTable
        stmt = (
            select(t)
            .where(t.outcome_return.is_(None), t.signal_date <= cutoff)
            .order_by(t.signal_date.asc(), t.id.asc())
        )
        async with self._db.use_session(session) as s:
            rows = (await s.execute(stmt)).scalars().all()
            return [self._row_to_entry(row) for row in rows]

    async def set_outcome(
        self,
        entry_id: int,
        resolution: OutcomeResolution,
        session: AsyncSession | None = None,
    ) -> bool:
        """Write the outcome once. Already-resolved rows are left untouched."""
        t = TradeJournalTable
        stmt = (
            update(t)
            .where(t.id == entry_id, t.outcome_return.is_(None))
            .values(
                outcome_return=resolution.outcome_return,
                outcome_date=resolution.outcome_date,
                is_correct=int(resolution.is_correct),
            )
        )
        async with self._db.use_session(session) as s:
            result = await s.execute(stmt)
            return result.rowcount == 1

    async def get_resolved(self, limit: int) -> list[ResolvedTrade]:
        """Most recent resolved trades, newest signal_date first."""
        t = TradeJournalTable
        stmt = (
            select(
                t.id,
                t.signal,
                t.confidence,
                t.outcome_return,
                t.is_correct,
                t.features_json,
            )
            .where(t.outcome_return.is_not(None))
            .order_by(t.signal_date.desc(), t.id.desc())
            .limit(limit)
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()

        return [
            ResolvedTrade(
                signal=Signal(row.signal),
                confidence=row.confidence,
                outcome_return=row.outcome_return,
                is_correct=row.is_correct == 1,
                feature_snapshot=_parse_snapshot(row.id, row.features_json),
            )
            for row in rows
        ]

    async def get_recent(self, limit: int = 100, symbol: str | None = None) -> list[JournalEntry]:
        """Recent entries, newest first."""
        t = TradeJournalTable
        stmt = select(t)
        if symbol:
            stmt = stmt.where(t.symbol == symbol)
        stmt = stmt.order_by(t.signal_date.desc(), t.id.desc()).limit(limit)
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [self._row_to_entry(row) for row in rows]

    async def get_by_id(self, entry_id: int) -> JournalEntry | None:
        async with self._db.session() as session:
            row = await session.get(TradeJournalTable, entry_id)
            return self._row_to_entry(row) if row is not None else None

    async def count_pending(self) -> int:
        t = TradeJournalTable
        stmt = select(func.count()).select_from(t).where(t.outcome_return.is_(None))
        async with self._db.session() as session:
            return (await session.execute(stmt)).scalar_one()

    @staticmethod
    def _entry_values(entry: JournalEntry) -> dict:
        return {
            "model_id": entry.model_id,
            "symbol": entry.symbol,
            "signal_date": entry.signal_date,
            "signal": entry.signal.value,
            "confidence": entry.confidence,
            "features_json": (
                json.dumps(entry.feature_snapshot, sort_keys=True)
                if entry.feature_snapshot is not None
                else None
            ),
            "reasoning": entry.reasoning,
        }

    @staticmethod
    def _row_to_entry(row: TradeJournalTable) -> JournalEntry:
        return JournalEntry(
            id=row.id,
            model_id=row.model_id,
            symbol=row.symbol,
            signal_date=row.signal_date,
            signal=Signal(row.signal),
            confidence=row.confidence,
            feature_snapshot=_parse_snapshot(row.id, row.features_json),
            reasoning=row.reasoning,
            outcome_return=row.outcome_return,
            outcome_date=row.outcome_date,
            is_correct=None if row.is_correct is None else row.is_correct == 1,
        )
