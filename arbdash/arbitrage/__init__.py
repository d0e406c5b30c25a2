# Arbitrage detection
from .detector import ArbitrageDetector, detect_opportunities

__all__ = ["ArbitrageDetector", "detect_opportunities"]
