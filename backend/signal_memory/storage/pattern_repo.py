"""Trade pattern (L2) repository.

trade_patterns is a rolling snapshot upserted by name; every write is
also appended to trade_pattern_history so past reflection runs stay
auditable.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from signal_core.models.memory import Pattern, PatternCondition, PatternStatus
from signal_memory.storage.database import (
    Database,
    TradePatternHistoryTable,
    TradePatternTable,
)

logger = logging.getLogger(__name__)


class PatternRepository:
    """Persist and query mined patterns."""

    def __init__(self, db: Database):
        self._db = db

    async def upsert_many(
        self,
        patterns: list[Pattern],
        discovered_at: datetime | None = None,
        session: AsyncSession | None = None,
    ) -> int:
        """Insert or overwrite patterns by name in one transaction.

        A fresh run replaces win_rate, avg_return, sample_count and
        discovered_at; condition and status of existing rows are kept.
        """
        if not patterns:
            return 0
        discovered_at = discovered_at or datetime.now(timezone.utc)

        rows = [
            {
                "pattern_name": p.name,
                "condition_json": p.condition.to_json(),
                "signal_type": p.signal_type,
                "win_rate": p.win_rate,
                "avg_return": p.avg_return,
                "sample_count": p.sample_count,
                "discovered_at": discovered_at,
            }
            for p in patterns
        ]

        async with self._db.use_session(session) as s:
            for row in rows:
                stmt = self._db.insert(TradePatternTable).values(**row, status=PatternStatus.ACTIVE.value)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["pattern_name"],
                    set_={
                        "win_rate": stmt.excluded.win_rate,
                        "avg_return": stmt.excluded.avg_return,
                        "sample_count": stmt.excluded.sample_count,
                        "discovered_at": stmt.excluded.discovered_at,
                    },
                )
                await s.execute(stmt)
            await s.execute(insert(TradePatternHistoryTable), rows)
        return len(rows)

    async def get_active(self) -> list[Pattern]:
        """Active patterns; rows with malformed conditions are skipped."""
        stmt = (
            select(TradePatternTable)
            .where(TradePatternTable.status == PatternStatus.ACTIVE.value)
            .order_by(TradePatternTable.id.asc())
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).scalars().all()

        patterns = []
        for row in rows:
            pattern = self._row_to_pattern(row)
            if pattern is not None:
                patterns.append(pattern)
        return patterns

    async def get_by_name(self, name: str) -> Pattern | None:
        stmt = select(TradePatternTable).where(TradePatternTable.pattern_name == name)
        async with self._db.session() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        return self._row_to_pattern(row) if row is not None else None

    async def get_history(self, name: str) -> list[dict]:
        """Every recorded snapshot of one pattern, oldest first."""
        t = TradePatternHistoryTable
        stmt = (
            select(t.win_rate, t.avg_return, t.sample_count, t.discovered_at)
            .where(t.pattern_name == name)
            .order_by(t.discovered_at.asc(), t.id.asc())
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()
        return [dict(row._mapping) for row in rows]

    async def set_status(self, name: str, status: PatternStatus) -> bool:
        """Activate or deprecate a pattern. Returns False when it does not exist."""
        stmt = (
            update(TradePatternTable)
            .where(TradePatternTable.pattern_name == name)
            .values(status=PatternStatus(status).value)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return result.rowcount == 1

    @staticmethod
    def _row_to_pattern(row: TradePatternTable) -> Pattern | None:
        try:
            condition = PatternCondition.from_json(row.condition_json)
        except ValueError:
            logger.warning(
                f"Pattern {row.id} ({row.pattern_name}): malformed condition_json skipped"
            )
            return None
        return Pattern(
            id=row.id,
            name=row.pattern_name,
            condition=condition,
            signal_type=row.signal_type or "",
            win_rate=row.win_rate or 0.0,
            avg_return=row.avg_return or 0.0,
            sample_count=row.sample_count or 0,
            status=PatternStatus(row.status),
            discovered_at=row.discovered_at,
        )
