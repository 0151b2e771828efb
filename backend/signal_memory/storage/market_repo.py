"""Read access to the market data tables owned by the ingestion pipeline."""

from __future__ import annotations

import logging
from datetime import date

import pandas as pd
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from signal_memory.storage.database import (
    ChipTable,
    DailyIndicatorTable,
    Database,
    FundamentalsHistoryTable,
    LatestPriceTable,
    MarginShortTable,
    MarketBreadthTable,
    MarketIndexTable,
    PriceHistoryTable,
)

logger = logging.getLogger(__name__)

_FUNDAMENTAL_COLUMNS = ("pe", "pb", "yield", "revenue_yoy", "gross_margin", "debt_ratio")


class MarketDataRepository:
    """Joined per-symbol daily rows and fundamentals."""

    def __init__(self, db: Database):
        self._db = db

    async def list_symbols(
        self,
        min_days: int,
        start: date | None = None,
        end: date | None = None,
    ) -> list[str]:
        """Symbols with at least min_days price bars in [start, end], sorted."""
        stmt = select(PriceHistoryTable.symbol)
        if start is not None:
            stmt = stmt.where(PriceHistoryTable.date >= start)
        if end is not None:
            stmt = stmt.where(PriceHistoryTable.date <= end)
        stmt = (
            stmt.group_by(PriceHistoryTable.symbol)
            .having(func.count() >= min_days)
            .order_by(PriceHistoryTable.symbol)
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            return [row[0] for row in result.all()]

    async def get_symbol_frame(self, symbol: str, start: date, end: date) -> pd.DataFrame:
        """Price bars left-joined with indicators, chips, margin, index and breadth."""
        p, di, c = PriceHistoryTable, DailyIndicatorTable, ChipTable
        ms, mi, mb = MarginShortTable, MarketIndexTable, MarketBreadthTable

        stmt = (
            select(
                p.date,
                p.close,
                p.volume,
                p.change_pct,
                di.ma5,
                di.ma20,
                di.ma60,
                di.rsi14,
                di.macd_diff,
                di.macd_dea,
                di.kd_k,
                di.kd_d,
                di.atr14,
                c.foreign_inv,
                c.invest_trust,
                c.dealer,
                ms.margin_net,
                ms.short_net,
                mi.close.label("market_close"),
                mb.ma20_breadth,
                mb.ma60_breadth,
            )
            .select_from(p)
            .outerjoin(di, and_(di.symbol == p.symbol, di.date == p.date))
            .outerjoin(c, and_(c.symbol == p.symbol, c.date == p.date))
            .outerjoin(ms, and_(ms.symbol == p.symbol, ms.date == p.date))
            .outerjoin(mi, mi.date == p.date)
            .outerjoin(mb, mb.date == p.date)
            .where(p.symbol == symbol, p.date >= start, p.date <= end)
            .order_by(p.date.asc())
        )
        async with self._db.session() as session:
            result = await session.execute(stmt)
            columns = list(result.keys())
            return pd.DataFrame(result.all(), columns=columns)

    async def get_latest_fundamentals(self, symbol: str) -> dict[str, float | None] | None:
        """Latest fundamentals snapshot, or None when the symbol has none."""
        t = LatestPriceTable
        stmt = select(
            t.pe, t.pb, t.dividend_yield, t.revenue_yoy, t.gross_margin, t.debt_ratio
        ).where(t.symbol == symbol)
        async with self._db.session() as session:
            row = (await session.execute(stmt)).first()
        if row is None:
            return None
        return dict(zip(_FUNDAMENTAL_COLUMNS, row))

    async def get_fundamentals_history(self, symbol: str) -> pd.DataFrame:
        """Point-in-time fundamentals, ascending by as_of_date."""
        t = FundamentalsHistoryTable
        stmt = (
            select(
                t.as_of_date,
                t.pe,
                t.pb,
                t.dividend_yield,
                t.revenue_yoy,
                t.gross_margin,
                t.debt_ratio,
            )
            .where(t.symbol == symbol)
            .order_by(t.as_of_date.asc())
        )
        async with self._db.session() as session:
            rows = (await session.execute(stmt)).all()
        return pd.DataFrame(rows, columns=["as_of_date", *_FUNDAMENTAL_COLUMNS])

    async def get_bars_from(
        self,
        symbol: str,
        on_or_after: date,
        limit: int,
        session: AsyncSession | None = None,
    ) -> list[tuple[date, float]]:
        """First `limit` (date, close) bars on or after a date, ascending."""
        p = PriceHistoryTable
        stmt = (
            select(p.date, p.close)
            .where(p.symbol == symbol, p.date >= on_or_after)
            .order_by(p.date.asc())
            .limit(limit)
        )
        async with self._db.use_session(session) as s:
            rows = (await s.execute(stmt)).all()
        return [(row.date, row.close) for row in rows]
