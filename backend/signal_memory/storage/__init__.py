"""Storage layer: database handle and repositories."""

from signal_memory.storage.adjustment_repo import AdjustmentRepository
from signal_memory.storage.database import Base, Database, init_database
from signal_memory.storage.journal_repo import JournalRepository
from signal_memory.storage.market_repo import MarketDataRepository
from signal_memory.storage.model_repo import ModelRepository
from signal_memory.storage.pattern_repo import PatternRepository

__all__ = [
    "AdjustmentRepository",
    "Base",
    "Database",
    "JournalRepository",
    "MarketDataRepository",
    "ModelRepository",
    "PatternRepository",
    "init_database",
]
