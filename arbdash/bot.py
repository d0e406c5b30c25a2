"""
Bot controller.
Owns the application state and runs the periodic scan loop.
"""

import asyncio
from typing import Any, Callable, Optional

from .activity import EntryFactory
from .arbitrage.detector import ArbitrageDetector
from .clients.chains import get_chain
from .clients.wallet import MISSING_WALLET_MESSAGE, WalletService
from .config import BotConfig
from .execution.simulator import ExecutionSimulator
from .feeds.market_feed import (
    MarketFeed,
    RandomMarketFeed,
    RandomSettlementSource,
    SettlementSource,
)
from .models import LogEntry, LogType
from .state import (
    AppState,
    BotStarted,
    BotStopped,
    Event,
    LogAppended,
    MarketsScanned,
    NetworkChanged,
    NoOpportunities,
    SettlementClaimed,
    StatsLoaded,
    ThresholdChanged,
    WalletChanged,
    WalletConnected,
    WalletDisconnected,
    apply_event,
    initial_state,
)
from .storage.sink import LOG_TABLE, NullSink, PersistenceSink, mirror
from .utils.logger import get_logger, TradeLogger

logger = get_logger("bot")
trade_logger = TradeLogger()


class ArbitrageBot:
    """
    Run-state machine and scan loop.

    Coordinates:
    - Market feed snapshots every scan interval
    - Arbitrage detection and simulated execution
    - Random settlement payouts
    - Best-effort mirroring of log lines to the persistence sink
    - Wallet connection state
    """

    def __init__(
        self,
        config: Optional[BotConfig] = None,
        feed: Optional[MarketFeed] = None,
        settlement: Optional[SettlementSource] = None,
        sink: Optional[PersistenceSink] = None,
        wallet: Optional[WalletService] = None
    ):
        """
        Initialize bot.

        Args:
            config: Scan and simulation parameters
            feed: Market data source (random prices by default)
            settlement: Source of settlement payouts
            sink: Persistence sink for logs and trades
            wallet: Wallet client; None if the operator has no wallet
        """
        self.config = config or BotConfig()
        self.feed = feed or RandomMarketFeed(symbols=tuple(self.config.symbols))
        self.settlement = settlement or RandomSettlementSource(
            probability=self.config.settlement_probability,
            min_amount=self.config.settlement_min_usd,
            max_amount=self.config.settlement_max_usd
        )
        self.sink = sink or NullSink()
        self.wallet = wallet

        self.entries = EntryFactory()
        self._state = initial_state(
            threshold=self.config.arb_threshold,
            log_capacity=self.config.log_capacity
        )

        self.detector = ArbitrageDetector(threshold=self._state.threshold)
        self.simulator = ExecutionSimulator(
            dispatch=self.dispatch,
            sink=self.sink,
            delay_seconds=self.config.execution_delay_seconds,
            position_size=self.config.position_size_usd
        )

        self._scan_task: Optional[asyncio.Task] = None
        self._writes: set[asyncio.Task] = set()
        self._subscribers: list[Callable[[AppState], Any]] = []

        if self.wallet:
            self.wallet.on_accounts_changed(self._on_accounts_changed)
            self.wallet.on_chain_changed(self._on_chain_changed)

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state.running

    def subscribe(self, callback: Callable[[AppState], Any]) -> Callable[[], None]:
        """
        Observe state after every event.

        Returns:
            Function that removes the subscription
        """
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    def dispatch(self, event: Event) -> AppState:
        """Apply an event, mirror any new log lines and notify subscribers."""
        previous = self._state
        self._state = apply_event(previous, event, self.entries)

        for entry in reversed(self._new_entries(previous)):
            self._mirror_log(entry)

        for callback in list(self._subscribers):
            try:
                callback(self._state)
            except Exception as e:
                logger.error(f"State subscriber error: {e}")

        return self._state

    def _new_entries(self, previous: AppState) -> list[LogEntry]:
        """Entries prepended by the last event, newest first."""
        old_head = previous.log.head
        added = []
        for entry in self._state.log:
            if old_head is not None and entry.id == old_head.id:
                break
            added.append(entry)
        return added

    def _mirror_log(self, entry: LogEntry) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; log line not persisted")
            return

        task = loop.create_task(mirror(
            LOG_TABLE,
            self.sink.insert_log(entry.type.value, entry.message, entry.timestamp)
        ))
        self._writes.add(task)
        task.add_done_callback(self._writes.discard)

    # Run state

    def start(self) -> AppState:
        """Begin scanning. No-op while already running."""
        if self.running:
            return self._state

        self.dispatch(BotStarted())
        self._scan_task = asyncio.create_task(self._run_loop())
        logger.info(
            "Bot started",
            extra={
                "threshold": self._state.threshold,
                "scan_interval": self.config.scan_interval_seconds
            }
        )
        return self._state

    def stop(self) -> AppState:
        """Stop scanning and cancel pending fills. No-op while stopped."""
        if not self.running:
            return self._state

        self.dispatch(BotStopped())

        if self._scan_task:
            self._scan_task.cancel()
            self._scan_task = None
        self.simulator.cancel_all()

        logger.info("Bot stopped", extra=self._state.stats.to_dict())
        return self._state

    def toggle(self) -> AppState:
        """Start if stopped, stop if running."""
        if self.running:
            return self.stop()
        return self.start()

    async def _run_loop(self) -> None:
        """Scan once per interval; the first tick comes one interval after start."""
        while self.running:
            await asyncio.sleep(self.config.scan_interval_seconds)

            if not self.running:
                break

            try:
                await self.scan_tick()
            except Exception as e:
                logger.error(f"Scan error: {e}")
                self.dispatch(LogAppended(LogType.ERROR, f"Error scanning markets: {e}"))

    async def scan_tick(self) -> None:
        """Run one scan: snapshot, detect, simulate, settle."""
        markets = await self.feed.snapshot()

        # Stopped while the feed was being read
        if not self.running:
            return

        self.dispatch(MarketsScanned(tuple(markets)))

        opportunities = self.detector.check_all_markets(markets)
        if opportunities:
            for opportunity in opportunities:
                self.simulator.submit(opportunity)
        else:
            self.dispatch(NoOpportunities(len(markets)))

        amount = self.settlement.roll()
        if amount is not None:
            self.dispatch(SettlementClaimed(amount))
            trade_logger.settlement_claimed(amount)

    # Configuration

    def set_threshold(self, value: float) -> float:
        """Change the arbitrage threshold; raises ValueError when out of range."""
        threshold = self.detector.set_threshold(value)
        self.dispatch(ThresholdChanged(threshold))
        return threshold

    async def load_history(self) -> None:
        """Seed profit and trade count from persisted trades."""
        try:
            total_profit, trades = await self.sink.load_trade_totals()
        except Exception as e:
            logger.error(f"Error loading trade history: {e}")
            return

        self.dispatch(StatsLoaded(total_profit=total_profit, trades=trades))
        logger.info(
            "Loaded trade history",
            extra={"total_profit": total_profit, "trades": trades}
        )

    # Wallet

    async def connect_wallet(self) -> Optional[str]:
        """
        Connect the operator's wallet and record its address and balance.

        Returns:
            Connected address, or None on failure
        """
        if not self.wallet or not self.wallet.available:
            logger.warning(MISSING_WALLET_MESSAGE)
            self.dispatch(LogAppended(LogType.ERROR, MISSING_WALLET_MESSAGE))
            return None

        address = await self.wallet.connect()
        if not address:
            self.dispatch(LogAppended(LogType.ERROR, "Failed to connect wallet."))
            return None

        balance, usdc_balance, chain_id = await asyncio.gather(
            self.wallet.get_balance(address),
            self.wallet.get_usdc_balance(address),
            self.wallet.get_chain_id(),
        )
        self.dispatch(WalletConnected(
            address=address,
            balance=balance,
            usdc_balance=usdc_balance,
            chain_id=chain_id
        ))
        self.wallet.start_watching()
        return address

    async def refresh_wallet(self) -> None:
        """Re-read the balances of the connected account."""
        address = self._state.wallet.address
        if not self.wallet or not address:
            return
        await self._dispatch_balances(address)

    async def _dispatch_balances(self, address: str) -> None:
        balance, usdc_balance = await asyncio.gather(
            self.wallet.get_balance(address),
            self.wallet.get_usdc_balance(address),
        )
        self.dispatch(WalletChanged(
            address=address, balance=balance, usdc_balance=usdc_balance
        ))

    async def _on_accounts_changed(self, accounts: list[str]) -> None:
        if not accounts:
            self.dispatch(WalletDisconnected())
            return
        await self._dispatch_balances(accounts[0])

    def _on_chain_changed(self, chain_id: int) -> None:
        chain = get_chain(chain_id)
        name = chain.name if chain else f"chain {chain_id}"
        self.dispatch(NetworkChanged(chain_id=chain_id, name=name))
        if chain_id != self.wallet.chain.id:
            logger.warning(
                "Wallet is on an unexpected network",
                extra={"chain_id": chain_id, "expected": self.wallet.chain.id}
            )

    async def shutdown(self) -> None:
        """Stop the bot and flush outstanding writes."""
        logger.info("Shutting down bot")
        self.stop()
        await self.simulator.drain()

        if self.wallet:
            await self.wallet.stop_watching()

        if self._writes:
            await asyncio.gather(*list(self._writes), return_exceptions=True)
        await self.feed.close()
        await self.sink.close()

        logger.info("Bot shutdown complete", extra=self._state.stats.to_dict())
