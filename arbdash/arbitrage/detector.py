"""
Binary arbitrage detector for YES/NO markets.
Flags markets where YES + NO prices sum to less than the threshold.
"""

from typing import Iterable, Optional

from ..config import DEFAULT_ARB_THRESHOLD, validate_threshold
from ..models import ArbitrageOpportunity, MarketSnapshot
from ..utils.logger import get_logger

logger = get_logger("detector")


def detect_opportunities(
    markets: Iterable[MarketSnapshot],
    threshold: float = DEFAULT_ARB_THRESHOLD
) -> list[ArbitrageOpportunity]:
    """
    Return the markets whose YES+NO sum is strictly below threshold.

    Results are ordered by descending implied profit (1 - sum). Ties keep
    their input order.
    """
    opportunities = [
        ArbitrageOpportunity(market=market)
        for market in markets
        if market.sum < threshold
    ]

    # Sort by profit (highest first)
    opportunities.sort(key=lambda x: x.potential_profit, reverse=True)

    return opportunities


class ArbitrageDetector:
    """
    Detector for binary (YES/NO) market arbitrage.

    Buying one YES and one NO share always pays out $1.00 at resolution,
    so any pair priced below $1.00 locks in the difference. The threshold
    sits below 1.0 to leave room for fees.
    """

    def __init__(self, threshold: float = DEFAULT_ARB_THRESHOLD):
        """
        Initialize binary arbitrage detector.

        Args:
            threshold: Flag markets whose YES+NO sum is below this value
        """
        self.threshold = validate_threshold(threshold)

    def set_threshold(self, threshold: float) -> float:
        """Change the threshold; raises ValueError when out of range."""
        self.threshold = validate_threshold(threshold)
        logger.info("Arbitrage threshold updated", extra={"threshold": self.threshold})
        return self.threshold

    def check_market(self, market: MarketSnapshot) -> Optional[ArbitrageOpportunity]:
        """Check a single market against the current threshold."""
        if market.sum < self.threshold:
            return ArbitrageOpportunity(market=market)
        return None

    def check_all_markets(
        self,
        markets: list[MarketSnapshot]
    ) -> list[ArbitrageOpportunity]:
        """
        Check all markets for arbitrage.

        Args:
            markets: Snapshots from the current scan tick

        Returns:
            List of detected opportunities, sorted by implied profit
        """
        opportunities = detect_opportunities(markets, self.threshold)

        if opportunities:
            logger.debug(
                "Binary arb detected",
                extra={
                    "markets": len(markets),
                    "opportunities": len(opportunities),
                    "best_sum": opportunities[0].total_cost,
                    "threshold": self.threshold
                }
            )

        return opportunities
