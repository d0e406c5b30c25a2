"""
Simulated execution of detected arbitrage opportunities.
Each opportunity becomes a pending fill that completes after a fixed delay.
"""

import asyncio
import time
from typing import Any, Callable, Optional

from ..models import ArbitrageOpportunity, LogType
from ..state import OpportunityDetected, TradeExecuted
from ..storage.sink import NullSink, PersistenceSink, TRADE_TABLE, mirror
from ..utils.logger import get_logger, TradeLogger

logger = get_logger("simulator")
trade_logger = TradeLogger()


class ExecutionSimulator:
    """
    Turns opportunities into simulated fills.

    Key responsibilities:
    - Record the opportunity immediately
    - Complete the fill after ``delay_seconds`` and credit the profit
    - Mirror the trade to the persistence sink (best-effort)
    - Cancel fills that are still pending when the bot stops
    """

    def __init__(
        self,
        dispatch: Callable[[Any], Any],
        sink: Optional[PersistenceSink] = None,
        delay_seconds: float = 0.5,
        position_size: float = 100.0
    ):
        """
        Initialize execution simulator.

        Args:
            dispatch: Applies an event to the application state
            sink: Destination for executed trades
            delay_seconds: Time between detection and fill
            position_size: Notional behind each fill; profit = (1 - sum) * size
        """
        self.dispatch = dispatch
        self.sink = sink or NullSink()
        self.delay_seconds = delay_seconds
        self.position_size = position_size

        # Pending fills keyed by opportunity id
        self._pending: dict[str, tuple[ArbitrageOpportunity, asyncio.Task]] = {}
        # Filled but still writing their trade row
        self._completing: set[asyncio.Task] = set()

    @property
    def pending(self) -> list[str]:
        """Ids of opportunities whose fill has not completed."""
        return list(self._pending)

    def profit_for(self, opportunity: ArbitrageOpportunity) -> float:
        return opportunity.potential_profit * self.position_size

    def submit(self, opportunity: ArbitrageOpportunity) -> asyncio.Task:
        """
        Record an opportunity and schedule its fill.

        Must be called from a running event loop.
        """
        self.dispatch(OpportunityDetected(opportunity))
        trade_logger.opportunity_detected(
            opportunity_id=opportunity.id,
            market_id=opportunity.market.id,
            total_cost=opportunity.total_cost,
            potential_profit=opportunity.potential_profit
        )

        task = asyncio.create_task(self._fill(opportunity))
        self._pending[opportunity.id] = (opportunity, task)
        task.add_done_callback(lambda _: self._pending.pop(opportunity.id, None))
        return task

    async def _fill(self, opportunity: ArbitrageOpportunity) -> float:
        start_time = time.time()
        await asyncio.sleep(self.delay_seconds)

        profit = self.profit_for(opportunity)
        # Filled; no longer cancellable
        task = asyncio.current_task()
        self._pending.pop(opportunity.id, None)
        self._completing.add(task)
        try:
            await self._record(opportunity, profit, start_time)
        finally:
            self._completing.discard(task)
        return profit

    async def _record(
        self,
        opportunity: ArbitrageOpportunity,
        profit: float,
        start_time: float
    ) -> None:
        self.dispatch(TradeExecuted(opportunity, profit))
        trade_logger.trade_executed(
            opportunity_id=opportunity.id,
            market_id=opportunity.market.id,
            profit=profit,
            latency_ms=(time.time() - start_time) * 1000
        )

        market = opportunity.market
        await mirror(TRADE_TABLE, self.sink.insert_trade(
            market_id=market.id,
            trade_type=LogType.TRADE_EXECUTED.value,
            profit=profit,
            yes_price=market.yes_price,
            no_price=market.no_price,
            total=market.sum
        ))

    def cancel_all(self) -> int:
        """Cancel every pending fill. Returns the number cancelled."""
        cancelled = 0
        for opportunity, task in list(self._pending.values()):
            if task.done():
                continue
            task.cancel()
            trade_logger.trade_cancelled(
                opportunity_id=opportunity.id,
                market_id=opportunity.market.id
            )
            cancelled += 1
        self._pending.clear()

        if cancelled:
            logger.info(f"Cancelled {cancelled} pending fills")
        return cancelled

    async def drain(self) -> None:
        """Wait for pending fills and for trade rows still being written."""
        tasks = [task for _, task in self._pending.values()]
        tasks.extend(self._completing)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
