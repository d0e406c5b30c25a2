"""
Market data sources for the scan loop.

``RandomMarketFeed`` stands in for a live feed; ``GammaMarketFeed`` reads
real binary markets. Both return the same snapshot type, so the detector
and simulator never know which one is in use.
"""

import random
from abc import ABC, abstractmethod
from typing import Optional

from ..clients.polymarket_api import PolymarketAPI
from ..models import MarketSnapshot
from ..utils.logger import get_logger

logger = get_logger("feed")

DEFAULT_SYMBOLS = ("BTC", "ETH", "SOL", "MATIC", "AVAX")


class MarketFeed(ABC):
    """Provider of current YES/NO prices."""

    @abstractmethod
    async def snapshot(self) -> list[MarketSnapshot]:
        """Return one snapshot per instrument for this scan tick."""

    async def close(self) -> None:
        """Release any held connections."""


class RandomMarketFeed(MarketFeed):
    """
    Pseudo-random prices for a fixed set of 15-minute crypto markets.

    YES and NO are each drawn from [0.45, 0.55), so sums land in
    [0.90, 1.10) and a 0.98 threshold flags roughly one market in five.
    """

    def __init__(
        self,
        symbols: tuple[str, ...] = DEFAULT_SYMBOLS,
        rng: Optional[random.Random] = None,
        price_floor: float = 0.45,
        price_range: float = 0.1
    ):
        self.symbols = tuple(symbols)
        self.rng = rng or random.Random()
        self.price_floor = price_floor
        self.price_range = price_range

    async def snapshot(self) -> list[MarketSnapshot]:
        return [self._make(symbol) for symbol in self.symbols]

    def _make(self, symbol: str) -> MarketSnapshot:
        return MarketSnapshot(
            id=f"{symbol}-15min",
            name=f"{symbol} price in 15 minutes",
            yes_price=self.price_floor + self.rng.random() * self.price_range,
            no_price=self.price_floor + self.rng.random() * self.price_range,
            volume_24h=self.rng.randrange(10000, 60000),
        )


class GammaMarketFeed(MarketFeed):
    """Binary markets from the Polymarket API mapped into snapshots."""

    def __init__(self, api: PolymarketAPI, limit: int = 50):
        self.api = api
        self.limit = limit

    async def snapshot(self) -> list[MarketSnapshot]:
        markets = await self.api.fetch_markets(status="active", limit=self.limit)
        snapshots = []
        for market in markets:
            snapshot = market.to_snapshot()
            if snapshot:
                snapshots.append(snapshot)
        logger.debug(f"Gamma feed returned {len(snapshots)} binary markets")
        return snapshots

    async def close(self) -> None:
        await self.api.close()


class SettlementSource(ABC):
    """Source of resolved-market payouts."""

    @abstractmethod
    def roll(self) -> Optional[float]:
        """Return a payout for this tick, or None."""


class RandomSettlementSource(SettlementSource):
    """Occasional random payout, independent of any real resolution."""

    def __init__(
        self,
        probability: float = 0.1,
        min_amount: float = 5.0,
        max_amount: float = 25.0,
        rng: Optional[random.Random] = None
    ):
        self.probability = probability
        self.min_amount = min_amount
        self.max_amount = max_amount
        self.rng = rng or random.Random()

    def roll(self) -> Optional[float]:
        if self.rng.random() < self.probability:
            return self.min_amount + self.rng.random() * (self.max_amount - self.min_amount)
        return None
