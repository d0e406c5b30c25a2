"""
Core data model for the arbitrage dashboard.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


class RunState(Enum):
    """Whether scan ticks occur."""
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


class LogType(Enum):
    """Category of an activity log entry."""
    INFO = "INFO"
    ARB_OPPORTUNITY = "ARB_OPPORTUNITY"
    TRADE_EXECUTED = "TRADE_EXECUTED"
    ERROR = "ERROR"
    SETTLED = "SETTLED"


def new_id() -> str:
    """Random short identifier for log entries and opportunities."""
    return secrets.token_hex(6)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class MarketSnapshot:
    """Current YES/NO prices for one instrument, valid for a single scan tick."""
    id: str
    name: str
    yes_price: float
    no_price: float
    volume_24h: int = 0

    @property
    def sum(self) -> float:
        """Combined cost of one YES and one NO share."""
        return self.yes_price + self.no_price

    @property
    def implied_profit(self) -> float:
        """Payout minus cost per share pair."""
        return 1.0 - self.sum

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "yes_price": self.yes_price,
            "no_price": self.no_price,
            "sum": self.sum,
            "volume_24h": self.volume_24h,
        }


@dataclass(frozen=True)
class LogEntry:
    """Single activity log line."""
    id: str
    timestamp: datetime
    type: LogType
    message: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class BotStats:
    """Running counters for the session."""
    total_profit: float = 0.0
    trades_executed: int = 0
    opportunities_detected: int = 0
    markets_scanned: int = 0

    def to_dict(self) -> dict:
        return {
            "total_profit": round(self.total_profit, 2),
            "trades_executed": self.trades_executed,
            "opportunities_detected": self.opportunities_detected,
            "markets_scanned": self.markets_scanned,
        }


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """A market snapshot whose YES+NO sum is below the threshold."""
    market: MarketSnapshot
    id: str = field(default_factory=new_id)
    detected_at: datetime = field(default_factory=utcnow)

    @property
    def total_cost(self) -> float:
        return self.market.sum

    @property
    def potential_profit(self) -> float:
        return self.market.implied_profit

    @property
    def profit_percentage(self) -> float:
        """Profit relative to cost, in percent."""
        if self.total_cost <= 0:
            return 0.0
        return self.potential_profit / self.total_cost * 100

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "market": self.market.to_dict(),
            "total_cost": self.total_cost,
            "potential_profit": self.potential_profit,
            "profit_percentage": self.profit_percentage,
            "detected_at": self.detected_at.isoformat(),
        }
