"""
Persistence sink interface.

Writes are mirrors of in-memory state and are strictly best-effort: a
failed write is logged and dropped, never retried.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Awaitable

from ..utils.logger import get_logger, TradeLogger

logger = get_logger("storage")
trade_logger = TradeLogger()

LOG_TABLE = "bot_logs"
TRADE_TABLE = "trades"


class PersistenceSink(ABC):
    """Destination for activity logs and executed trades."""

    @abstractmethod
    async def insert_log(self, log_type: str, message: str, timestamp: datetime) -> None:
        """Insert one activity log row."""

    @abstractmethod
    async def insert_trade(
        self,
        market_id: str,
        trade_type: str,
        profit: float,
        yes_price: float,
        no_price: float,
        total: float
    ) -> None:
        """Insert one trade row."""

    @abstractmethod
    async def load_trade_totals(self) -> tuple[float, int]:
        """Return (sum of profit, number of trades) over the trade table."""

    async def close(self) -> None:
        """Release any held connections."""


class NullSink(PersistenceSink):
    """Sink used when no backend is configured."""

    async def insert_log(self, log_type: str, message: str, timestamp: datetime) -> None:
        return None

    async def insert_trade(
        self,
        market_id: str,
        trade_type: str,
        profit: float,
        yes_price: float,
        no_price: float,
        total: float
    ) -> None:
        return None

    async def load_trade_totals(self) -> tuple[float, int]:
        return 0.0, 0


async def mirror(table: str, write: Awaitable[None]) -> bool:
    """
    Await a sink write, swallowing any failure.

    Returns:
        True if the write succeeded
    """
    try:
        await write
        return True
    except Exception as e:
        trade_logger.persistence_failed(table=table, error=str(e))
        return False
