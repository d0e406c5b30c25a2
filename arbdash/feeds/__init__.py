# Market data and settlement sources
from .market_feed import (
    MarketFeed,
    RandomMarketFeed,
    GammaMarketFeed,
    SettlementSource,
    RandomSettlementSource,
)

__all__ = [
    "MarketFeed", "RandomMarketFeed", "GammaMarketFeed",
    "SettlementSource", "RandomSettlementSource",
]
