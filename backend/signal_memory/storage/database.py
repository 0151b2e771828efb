"""Database connection and table definitions.

Market data tables are owned by the ingestion pipeline and only read
here; they are declared so the schema can be created for local runs and
tests. The trade memory tables (trade_journal, trade_patterns,
trade_pattern_history, strategy_adjustments, ml_models) are owned by
this package.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from signal_memory.config import get_settings

logger = logging.getLogger(__name__)

Base = declarative_base()


# ── Market data (read-only) ─────────────────────────────────────


class PriceHistoryTable(Base):
    """Daily price bars."""

    __tablename__ = "price_history"

    symbol = Column(String(20), primary_key=True)
    date = Column(Date, primary_key=True)
    open = Column(Float)
    high = Column(Float)
    low = Column(Float)
    close = Column(Float)
    volume = Column(Float)
    change_pct = Column(Float)

    __table_args__ = (Index("idx_price_history_date", "date"),)


class DailyIndicatorTable(Base):
    """Technical indicators aligned 1:1 with price bars."""

    __tablename__ = "daily_indicators"

    symbol = Column(String(20), primary_key=True)
    date = Column(Date, primary_key=True)
    ma5 = Column(Float)
    ma20 = Column(Float)
    ma60 = Column(Float)
    rsi14 = Column(Float)
    macd_diff = Column(Float)
    macd_dea = Column(Float)
    kd_k = Column(Float)
    kd_d = Column(Float)
    atr14 = Column(Float)


class ChipTable(Base):
    """Institutional net flows (foreign / investment trust / dealer)."""

    __tablename__ = "chips"

    symbol = Column(String(20), primary_key=True)
    date = Column(Date, primary_key=True)
    foreign_inv = Column(Float)
    invest_trust = Column(Float)
    dealer = Column(Float)


class MarginShortTable(Base):
    """Margin and short balance changes."""

    __tablename__ = "margin_short"

    symbol = Column(String(20), primary_key=True)
    date = Column(Date, primary_key=True)
    margin_net = Column(Float)
    short_net = Column(Float)


class MarketIndexTable(Base):
    """Market index daily close."""

    __tablename__ = "market_index"

    date = Column(Date, primary_key=True)
    close = Column(Float)


class MarketBreadthTable(Base):
    """Share of symbols above their MA20 / MA60, in percent."""

    __tablename__ = "market_breadth_history"

    date = Column(Date, primary_key=True)
    ma20_breadth = Column(Float)
    ma60_breadth = Column(Float)


class LatestPriceTable(Base):
    """Latest fundamentals snapshot per symbol."""

    __tablename__ = "latest_prices"

    symbol = Column(String(20), primary_key=True)
    pe = Column(Float)
    pb = Column(Float)
    # "yield" is a Python keyword, so the attribute is renamed
    dividend_yield = Column("yield", Float)
    revenue_yoy = Column(Float)
    gross_margin = Column(Float)
    debt_ratio = Column(Float)


class FundamentalsHistoryTable(Base):
    """Point-in-time fundamentals, one row per publication date."""

    __tablename__ = "fundamentals_history"

    symbol = Column(String(20), primary_key=True)
    as_of_date = Column(Date, primary_key=True)
    pe = Column(Float)
    pb = Column(Float)
    dividend_yield = Column("yield", Float)
    revenue_yoy = Column(Float)
    gross_margin = Column(Float)
    debt_ratio = Column(Float)


# ── Trade memory ────────────────────────────────────────────────


class TradeJournalTable(Base):
    """L1 hot memory: every emitted signal and its realized outcome."""

    __tablename__ = "trade_journal"

    id = Column(Integer, primary_key=True, autoincrement=True)
    model_id = Column(String(100), nullable=False)
    symbol = Column(String(20), nullable=False)
    signal_date = Column(Date, nullable=False)
    signal = Column(String(4), nullable=False)
    confidence = Column(Float, nullable=False)
    features_json = Column(Text, nullable=True)
    reasoning = Column(Text, nullable=True)
    outcome_return = Column(Float, nullable=True)
    outcome_date = Column(Date, nullable=True)
    is_correct = Column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("signal IN ('BUY','HOLD','SELL')", name="ck_journal_signal"),
        Index("idx_journal_model", "model_id"),
        Index("idx_journal_date", "signal_date"),
        Index("idx_journal_pending", "outcome_return", "signal_date"),
    )


class TradePatternTable(Base):
    """L2 warm memory: rolling pattern snapshot, one row per name."""

    __tablename__ = "trade_patterns"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pattern_name = Column(String(100), nullable=False, unique=True)
    condition_json = Column(Text, nullable=False)
    signal_type = Column(String(4), nullable=True)
    win_rate = Column(Float)
    avg_return = Column(Float)
    sample_count = Column(Integer, default=0)
    discovered_at = Column(DateTime(timezone=True))
    status = Column(String(20), nullable=False, default="active")

    __table_args__ = (
        CheckConstraint("status IN ('active','deprecated')", name="ck_pattern_status"),
    )


class TradePatternHistoryTable(Base):
    """Append-only log of every pattern snapshot a reflection run wrote."""

    __tablename__ = "trade_pattern_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pattern_name = Column(String(100), nullable=False)
    condition_json = Column(Text, nullable=False)
    signal_type = Column(String(4), nullable=True)
    win_rate = Column(Float)
    avg_return = Column(Float)
    sample_count = Column(Integer)
    discovered_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_pattern_history_name_time", "pattern_name", "discovered_at"),
    )


class StrategyAdjustmentTable(Base):
    """L3 cold memory: proposed / approved / applied adjustments."""

    __tablename__ = "strategy_adjustments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pattern_id = Column(Integer, ForeignKey("trade_patterns.id"), nullable=True)
    adjustment_type = Column(String(30), nullable=False)
    adjustment_json = Column(Text, nullable=False)
    reason = Column(Text)
    created_at = Column(DateTime(timezone=True))
    applied_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default="proposed")

    __table_args__ = (
        CheckConstraint(
            "adjustment_type IN ('confidence_scale','signal_suppress')",
            name="ck_adjustment_type",
        ),
        CheckConstraint(
            "status IN ('proposed','approved','applied','rejected')",
            name="ck_adjustment_status",
        ),
        Index("idx_adj_status", "status"),
    )


class ModelRegistryTable(Base):
    """Versioned model metadata, including the frozen normalization stats."""

    __tablename__ = "ml_models"

    model_id = Column(String(100), primary_key=True)
    model_name = Column(String(100), nullable=False)
    version = Column(Integer, nullable=False, default=1)
    first_registered_at = Column(DateTime(timezone=True), nullable=False)
    last_registered_at = Column(DateTime(timezone=True), nullable=False)
    config_json = Column(Text)
    metrics_json = Column(Text)
    norm_stats_json = Column(Text)
    weights_path = Column(Text)


class Database:
    """Database connection manager.

    Constructed explicitly and passed to repositories; call close() when done.
    """

    def __init__(self, database_url: str | None = None, echo: bool | None = None):
        if database_url is None or echo is None:
            settings = get_settings()
            database_url = database_url or settings.database_url
            echo = settings.debug if echo is None else echo
        url = database_url

        # Pick async drivers
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)

        self.url = url
        self.dialect = url.split("+", 1)[0].split(":", 1)[0]

        if self.dialect == "postgresql":
            # Batch jobs plus one scoring service; short statements only
            self.engine = create_async_engine(
                url,
                echo=echo,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_timeout=30,
                connect_args={
                    "timeout": 10,
                    "command_timeout": 60,
                },
            )
        else:
            self.engine = create_async_engine(url, echo=echo)

        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    def insert(self, table):
        """Dialect-specific INSERT supporting ON CONFLICT DO UPDATE."""
        if self.dialect == "postgresql":
            return postgresql.insert(table)
        if self.dialect == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(f"Upsert not supported for dialect {self.dialect!r}")

    async def create_tables(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional session: commit on success, rollback and re-raise on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    @asynccontextmanager
    async def use_session(
        self, session: AsyncSession | None = None
    ) -> AsyncGenerator[AsyncSession, None]:
        """Join the caller's transaction when given one, otherwise open a new one."""
        if session is not None:
            yield session
            return
        async with self.session() as own:
            yield own

    async def close(self) -> None:
        """Close database connection."""
        await self.engine.dispose()


async def init_database(database_url: str | None = None) -> Database:
    """Create a database handle and ensure tables exist."""
    db = Database(database_url)
    await db.create_tables()
    return db
