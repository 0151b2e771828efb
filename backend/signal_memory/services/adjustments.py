"""Strategy adjustments (L3 cold memory): proposal and inference-time application."""

from __future__ import annotations

import logging

from signal_core.memory.adjustments import ActiveAdjustments, compose_adjustments, propose_adjustments
from signal_core.models.config import MemoryConfig
from signal_core.models.memory import Adjustment
from signal_memory.storage.adjustment_repo import AdjustmentRepository
from signal_memory.storage.database import Database
from signal_memory.storage.pattern_repo import PatternRepository

logger = logging.getLogger(__name__)


class AdjustmentGenerator:
    """Turn weak active patterns into proposals. Nothing is auto-applied."""

    def __init__(self, db: Database, config: MemoryConfig | None = None):
        self.config = config or MemoryConfig()
        self._patterns = PatternRepository(db)
        self._adjustments = AdjustmentRepository(db)

    async def generate_adjustments(self) -> list[Adjustment]:
        """Insert proposals for every active pattern that warrants one."""
        patterns = await self._patterns.get_active()
        proposals: list[Adjustment] = []
        for pattern in patterns:
            proposals.extend(propose_adjustments(pattern, self.config))

        await self._adjustments.insert_many(proposals)
        logger.info(f"Generated {len(proposals)} adjustment proposals from {len(patterns)} patterns")
        return proposals


class AdjustmentApplier:
    """Read-only view of applied adjustments for the scoring service."""

    def __init__(self, db: Database):
        self._adjustments = AdjustmentRepository(db)

    async def get_active_adjustments(self) -> ActiveAdjustments:
        """Applied adjustments composed per signal key (min scale, OR suppress)."""
        rows = await self._adjustments.get_applied()
        return compose_adjustments(rows)
