"""
Tests for arbitrage detection logic.
"""

import pytest

from arbdash.arbitrage.detector import ArbitrageDetector, detect_opportunities
from conftest import make_market


class TestDetectOpportunities:
    """Tests for the pure detection function."""

    def test_flags_market_below_threshold(self, arb_market):
        """YES=0.45, NO=0.50 sums to 0.95 and is flagged with profit 0.05."""
        opportunities = detect_opportunities([arb_market], threshold=0.98)

        assert len(opportunities) == 1
        assert opportunities[0].market is arb_market
        assert opportunities[0].total_cost == pytest.approx(0.95)
        assert opportunities[0].potential_profit == pytest.approx(0.05)

    def test_ignores_fair_market(self, fair_market):
        assert detect_opportunities([fair_market], threshold=0.98) == []

    def test_threshold_is_strict(self):
        """A sum equal to the threshold is not an opportunity."""
        market = make_market(0.45, 0.45)
        assert detect_opportunities([market], threshold=0.90) == []

    def test_lower_threshold_excludes_market(self, arb_market):
        assert detect_opportunities([arb_market], threshold=0.94) == []

    def test_empty_input(self):
        assert detect_opportunities([]) == []

    def test_sorted_by_profit(self):
        small = make_market(0.48, 0.49, market_id="A")
        large = make_market(0.45, 0.46, market_id="B")
        medium = make_market(0.46, 0.49, market_id="C")

        opportunities = detect_opportunities([small, large, medium])

        assert [o.market.id for o in opportunities] == ["B", "C", "A"]

    def test_idempotent(self, arb_market, fair_market):
        markets = [arb_market, fair_market]
        first = detect_opportunities(markets)
        second = detect_opportunities(markets)

        assert [o.market for o in first] == [o.market for o in second]

    def test_profit_percentage(self, arb_market):
        opportunity = detect_opportunities([arb_market])[0]
        assert opportunity.profit_percentage == pytest.approx(0.05 / 0.95 * 100)


class TestArbitrageDetector:
    """Tests for the stateful detector."""

    def test_default_threshold(self):
        assert ArbitrageDetector().threshold == 0.98

    def test_check_market(self, arb_market, fair_market):
        detector = ArbitrageDetector()

        assert detector.check_market(arb_market) is not None
        assert detector.check_market(fair_market) is None

    def test_set_threshold(self, arb_market):
        detector = ArbitrageDetector()
        detector.set_threshold(0.93)

        assert detector.threshold == 0.93
        assert detector.check_all_markets([arb_market]) == []

    @pytest.mark.parametrize("value", [0.5, 0.89, 0.995, 1.0])
    def test_rejects_out_of_range_threshold(self, value):
        detector = ArbitrageDetector()

        with pytest.raises(ValueError):
            detector.set_threshold(value)
        assert detector.threshold == 0.98

    @pytest.mark.parametrize("value", [0.90, 0.99])
    def test_accepts_range_bounds(self, value):
        assert ArbitrageDetector(threshold=value).threshold == value
