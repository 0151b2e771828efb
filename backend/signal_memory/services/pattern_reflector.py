"""Reflection engine (L2 warm memory)."""

from __future__ import annotations

import logging
from typing import Iterable

from signal_core.memory.reflection import DEFAULT_FEATURE_RULES, FeatureRule, PatternMiner
from signal_core.models.config import MemoryConfig
from signal_core.models.memory import Pattern
from signal_memory.storage.database import Database
from signal_memory.storage.journal_repo import JournalRepository
from signal_memory.storage.pattern_repo import PatternRepository

logger = logging.getLogger(__name__)


class PatternReflector:
    """Mine patterns from the latest resolved trades and upsert them by name."""

    def __init__(
        self,
        db: Database,
        config: MemoryConfig | None = None,
        feature_rules: Iterable[FeatureRule] = DEFAULT_FEATURE_RULES,
    ):
        self.config = config or MemoryConfig()
        self._journal = JournalRepository(db)
        self._patterns = PatternRepository(db)
        self._miner = PatternMiner(self.config, feature_rules)

    async def run_reflection(self) -> list[Pattern]:
        """Discover and store patterns. Empty when there are too few resolved trades."""
        trades = await self._journal.get_resolved(self.config.reflection_limit)
        patterns = self._miner.mine(trades)
        if not patterns:
            logger.info(f"Reflection found no patterns in {len(trades)} resolved trades")
            return []

        await self._patterns.upsert_many(patterns)
        logger.info(f"Discovered {len(patterns)} patterns from {len(trades)} resolved trades")
        for p in patterns:
            logger.info(
                f"  {p.name:<25} WR={p.win_rate * 100:.1f}%  "
                f"Avg={p.avg_return * 100:.2f}%  N={p.sample_count}"
            )
        return patterns
