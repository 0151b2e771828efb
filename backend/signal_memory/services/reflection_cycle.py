"""Scheduled maintenance job: outcomes → reflection → adjustment proposals.

Meant to run single-flight (e.g. weekly, after market close).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date

from signal_core.memory.adjustments import ActiveAdjustments
from signal_core.models.config import MemoryConfig, TrainConfig
from signal_core.models.memory import Adjustment, Pattern
from signal_memory.services.adjustments import AdjustmentApplier, AdjustmentGenerator
from signal_memory.services.pattern_reflector import PatternReflector
from signal_memory.services.trade_journal import TradeJournal
from signal_memory.storage.database import Database

logger = logging.getLogger(__name__)


@dataclass
class ReflectionSummary:
    outcomes_filled: int = 0
    patterns: list[Pattern] = field(default_factory=list)
    proposals: list[Adjustment] = field(default_factory=list)
    active: ActiveAdjustments = field(default_factory=ActiveAdjustments)


async def run_reflection_cycle(
    db: Database,
    train_config: TrainConfig | None = None,
    memory_config: MemoryConfig | None = None,
    as_of: date | None = None,
) -> ReflectionSummary:
    """Run the full feedback loop once and log a summary."""
    train_config = train_config or TrainConfig()
    memory_config = memory_config or MemoryConfig()
    summary = ReflectionSummary()

    logger.info("[1/3] Filling trade outcomes")
    journal = TradeJournal(db, memory_config)
    summary.outcomes_filled = await journal.fill_outcomes(train_config.forward_days, as_of=as_of)

    logger.info("[2/3] Running reflection")
    summary.patterns = await PatternReflector(db, memory_config).run_reflection()

    logger.info("[3/3] Generating strategy adjustments")
    summary.proposals = await AdjustmentGenerator(db, memory_config).generate_adjustments()

    summary.active = await AdjustmentApplier(db).get_active_adjustments()
    logger.info(
        f"Reflection complete: {summary.outcomes_filled} outcomes, "
        f"{len(summary.patterns)} patterns, {len(summary.proposals)} proposals, "
        f"{len(summary.active)} active adjustment keys"
    )
    for key, effect in summary.active.items():
        logger.info(f"  {key}: scale={effect.scale:.2f} suppress={effect.suppress}")
    return summary
