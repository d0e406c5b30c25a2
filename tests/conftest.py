"""Pytest configuration and fixtures."""

import asyncio
from datetime import datetime
from typing import Optional

import pytest

from arbdash.activity import EntryFactory
from arbdash.config import BotConfig
from arbdash.feeds.market_feed import MarketFeed, SettlementSource
from arbdash.models import MarketSnapshot
from arbdash.storage.sink import PersistenceSink


def make_market(
    yes_price: float,
    no_price: float,
    market_id: str = "BTC-15min",
    name: str = "BTC price in 15 minutes"
) -> MarketSnapshot:
    """Create a test market snapshot."""
    return MarketSnapshot(
        id=market_id,
        name=name,
        yes_price=yes_price,
        no_price=no_price,
        volume_24h=25000,
    )


class StaticFeed(MarketFeed):
    """Feed returning the same markets every tick."""

    def __init__(self, markets: list[MarketSnapshot]):
        self.markets = markets
        self.calls = 0

    async def snapshot(self) -> list[MarketSnapshot]:
        self.calls += 1
        return list(self.markets)


class FixedSettlement(SettlementSource):
    """Settlement source returning a fixed payout (or nothing)."""

    def __init__(self, amount: Optional[float] = None):
        self.amount = amount

    def roll(self) -> Optional[float]:
        return self.amount


class RecordingSink(PersistenceSink):
    """In-memory sink that records every write.

    ``write_delay`` makes trade writes slow; a write that lands after
    ``close`` raises like a real closed connection.
    """

    def __init__(
        self,
        totals: tuple[float, int] = (0.0, 0),
        fail: bool = False,
        write_delay: float = 0.0
    ):
        self.logs: list[tuple[str, str, datetime]] = []
        self.trades: list[dict] = []
        self.totals = totals
        self.fail = fail
        self.write_delay = write_delay
        self.closed = False

    async def insert_log(self, log_type: str, message: str, timestamp: datetime) -> None:
        if self.fail:
            raise ConnectionError("sink unavailable")
        self.logs.append((log_type, message, timestamp))

    async def insert_trade(
        self,
        market_id: str,
        trade_type: str,
        profit: float,
        yes_price: float,
        no_price: float,
        total: float
    ) -> None:
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail or self.closed:
            raise ConnectionError("sink unavailable")
        self.trades.append({
            "market_id": market_id,
            "type": trade_type,
            "profit": profit,
            "yes_price": yes_price,
            "no_price": no_price,
            "sum": total,
        })

    async def load_trade_totals(self) -> tuple[float, int]:
        if self.fail:
            raise ConnectionError("sink unavailable")
        return self.totals

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def arb_market() -> MarketSnapshot:
    """Market whose YES+NO sum is 0.95."""
    return make_market(0.45, 0.50)


@pytest.fixture
def fair_market() -> MarketSnapshot:
    """Market priced exactly at 1.00."""
    return make_market(0.50, 0.50, market_id="ETH-15min", name="ETH price in 15 minutes")


@pytest.fixture
def entries() -> EntryFactory:
    return EntryFactory()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def fast_config() -> BotConfig:
    """Bot config with short timings for async tests."""
    return BotConfig(
        scan_interval_seconds=0.05,
        execution_delay_seconds=0.01,
    )


@pytest.fixture
def slow_config() -> BotConfig:
    """Bot config whose scan loop never ticks during a test."""
    return BotConfig(
        scan_interval_seconds=60.0,
        execution_delay_seconds=60.0,
    )
