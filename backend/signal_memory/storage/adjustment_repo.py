"""Strategy adjustment (L3) repository."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from signal_core.models.memory import (
    ALLOWED_TRANSITIONS,
    Adjustment,
    AdjustmentStatus,
    ConfidenceScale,
    PatternCondition,
    SignalSuppress,
    payload_from_json,
    payload_to_json,
)
from signal_memory.storage.database import (
    Database,
    StrategyAdjustmentTable,
    TradePatternTable,
)

logger = logging.getLogger(__name__)


class AdjustmentRepository:
    """Persist proposals and read the applied set."""

    def __init__(self, db: Database):
        self._db = db

    async def insert_many(
        self, adjustments: list[Adjustment], session: AsyncSession | None = None
    ) -> int:
        """Append proposals in one transaction. Returns number inserted."""
        if not adjustments:
            return 0
        now = datetime.now(timezone.utc)
        rows = [
            {
                "pattern_id": a.pattern_id,
                "adjustment_type": a.adjustment_type.value,
                "adjustment_json": payload_to_json(a.payload),
                "reason": a.reason,
                "created_at": now,
                "status": a.status.value,
            }
            for a in adjustments
        ]
        async with self._db.use_session(session) as s:
            await s.execute(insert(StrategyAdjustmentTable), rows)
        return len(rows)

    async def get_applied(self) -> list[tuple[PatternCondition, ConfidenceScale | SignalSuppress]]:
        """Applied adjustments joined to their pattern's condition.

        Rows with a malformed condition or payload are skipped and logged.
        """
        a, p = StrategyAdjustmentTable, TradePatternTable
        stmt = (
            select(a.id, a.adjustment_type, a.adjustment_json, p.condition_json)
            .join(p, a.pattern_id == p.id)
            .where(a.status == AdjustmentStatus.APPLIED.value)
            .order_by(a.id.asc())
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()

        applied = []
        for row in rows:
            try:
                condition = PatternCondition.from_json(row.condition_json)
                payload = payload_from_json(row.adjustment_type, row.adjustment_json)
            except (ValueError, ValidationError):
                logger.warning(f"Adjustment {row.id}: malformed condition or payload skipped")
                continue
            applied.append((condition, payload))
        return applied

    async def list_by_status(self, status: AdjustmentStatus) -> list[Adjustment]:
        """Adjustments with a status; malformed payloads are skipped."""
        t = StrategyAdjustmentTable
        stmt = (
            select(t)
            .where(t.status == AdjustmentStatus(status).value)
            .order_by(t.id.asc())
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).scalars().all()

        result = []
        for row in rows:
            try:
                payload = payload_from_json(row.adjustment_type, row.adjustment_json)
            except (ValueError, ValidationError):
                logger.warning(f"Adjustment {row.id}: malformed payload skipped")
                continue
            result.append(
                Adjustment(
                    id=row.id,
                    pattern_id=row.pattern_id,
                    payload=payload,
                    reason=row.reason or "",
                    status=AdjustmentStatus(row.status),
                )
            )
        return result

    async def set_status(self, adjustment_id: int, status: AdjustmentStatus) -> None:
        """Move an adjustment through governance.

        Raises KeyError for an unknown id and ValueError for a transition
        that is not allowed (e.g. rejected → applied).
        """
        new_status = AdjustmentStatus(status)
        t = StrategyAdjustmentTable
        async with self._db.session() as session:
            current = (
                await session.execute(select(t.status).where(t.id == adjustment_id))
            ).scalar_one_or_none()
            if current is None:
                raise KeyError(f"Adjustment {adjustment_id} not found")

            old_status = AdjustmentStatus(current)
            if new_status not in ALLOWED_TRANSITIONS[old_status]:
                raise ValueError(
                    f"Adjustment {adjustment_id}: cannot move {old_status.value} → {new_status.value}"
                )

            values: dict = {"status": new_status.value}
            if new_status == AdjustmentStatus.APPLIED:
                values["applied_at"] = datetime.now(timezone.utc)
            await session.execute(update(t).where(t.id == adjustment_id).values(**values))
        logger.info(f"Adjustment {adjustment_id}: {old_status.value} → {new_status.value}")
