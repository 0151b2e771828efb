"""Shared fixtures: a temporary SQLite store and market data seeding."""

from datetime import date

import pandas as pd
import pytest

from signal_memory.storage.database import (
    DailyIndicatorTable,
    Database,
    FundamentalsHistoryTable,
    LatestPriceTable,
    PriceHistoryTable,
)


def trading_days(start: date, n: int) -> list[date]:
    """n consecutive weekdays starting at start."""
    return [ts.date() for ts in pd.bdate_range(start, periods=n)]


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'stocks.db'}", echo=False)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def seed_prices(db):
    """Insert price bars (and matching indicator rows) for one symbol."""

    async def _seed(
        symbol: str,
        closes: list[float],
        start: date = date(2024, 1, 1),
        volume: float = 1000.0,
        rsi14: float = 60.0,
    ) -> list[date]:
        days = trading_days(start, len(closes))
        async with db.session() as session:
            prev = None
            for d, close in zip(days, closes):
                change = (close - prev) / prev * 100 if prev else 0.0
                session.add(
                    PriceHistoryTable(
                        symbol=symbol,
                        date=d,
                        open=close,
                        high=close,
                        low=close,
                        close=close,
                        volume=volume,
                        change_pct=change,
                    )
                )
                session.add(
                    DailyIndicatorTable(
                        symbol=symbol,
                        date=d,
                        ma5=close,
                        ma20=close,
                        ma60=close,
                        rsi14=rsi14,
                        macd_diff=0.1,
                        macd_dea=0.05,
                        kd_k=55.0,
                        kd_d=50.0,
                        atr14=close * 0.02,
                    )
                )
                prev = close
        return days

    return _seed


@pytest.fixture
def seed_fundamentals(db):
    """Insert a latest snapshot and/or point-in-time history for one symbol."""

    async def _seed(
        symbol: str,
        latest: dict | None = None,
        history: list[tuple[date, dict]] | None = None,
    ) -> None:
        async with db.session() as session:
            if latest is not None:
                session.add(LatestPriceTable(symbol=symbol, **latest))
            for as_of, values in history or []:
                session.add(FundamentalsHistoryTable(symbol=symbol, as_of_date=as_of, **values))

    return _seed
