"""
Application state and the events that change it.

All mutation goes through ``apply_event``, which returns a new ``AppState``
and never touches its input. The controller owns the only live reference.
"""

from dataclasses import dataclass, field, replace
from typing import Optional, Union

from . import activity
from .activity import ActivityLog, EntryFactory
from .config import DEFAULT_ARB_THRESHOLD, validate_threshold
from .models import ArbitrageOpportunity, BotStats, LogType, MarketSnapshot, RunState

START_MESSAGE = "Bot started. Monitoring Polymarket for arbitrage opportunities..."
STOP_MESSAGE = "Bot stopped."


@dataclass(frozen=True)
class WalletInfo:
    address: Optional[str] = None
    balance: str = "0"
    usdc_balance: str = "0"
    chain_id: Optional[int] = None

    @property
    def connected(self) -> bool:
        return self.address is not None

    def to_dict(self) -> dict:
        return {
            "connected": self.connected,
            "address": self.address,
            "display_address": format_address(self.address) if self.address else None,
            "balance": self.balance,
            "display_balance": format_balance(self.balance),
            "usdc_balance": self.usdc_balance,
            "display_usdc_balance": format_balance(self.usdc_balance, decimals=2),
            "chain_id": self.chain_id,
        }


@dataclass(frozen=True)
class AppState:
    run_state: RunState = RunState.STOPPED
    markets: tuple[MarketSnapshot, ...] = ()
    log: ActivityLog = field(default_factory=ActivityLog)
    stats: BotStats = field(default_factory=BotStats)
    threshold: float = DEFAULT_ARB_THRESHOLD
    wallet: WalletInfo = field(default_factory=WalletInfo)

    @property
    def running(self) -> bool:
        return self.run_state == RunState.RUNNING

    def to_dict(self, log_limit: Optional[int] = None) -> dict:
        return {
            "run_state": self.run_state.value,
            "threshold": self.threshold,
            "stats": self.stats.to_dict(),
            "markets": [
                {**m.to_dict(), "is_opportunity": m.sum < self.threshold}
                for m in self.markets
            ],
            "logs": [e.to_dict() for e in self.log.latest(log_limit)],
            "wallet": self.wallet.to_dict(),
        }


# Events

@dataclass(frozen=True)
class BotStarted:
    pass


@dataclass(frozen=True)
class BotStopped:
    pass


@dataclass(frozen=True)
class MarketsScanned:
    markets: tuple[MarketSnapshot, ...]


@dataclass(frozen=True)
class NoOpportunities:
    markets: int


@dataclass(frozen=True)
class OpportunityDetected:
    opportunity: ArbitrageOpportunity


@dataclass(frozen=True)
class TradeExecuted:
    opportunity: ArbitrageOpportunity
    profit: float


@dataclass(frozen=True)
class SettlementClaimed:
    amount: float


@dataclass(frozen=True)
class LogAppended:
    type: LogType
    message: str


@dataclass(frozen=True)
class ThresholdChanged:
    value: float


@dataclass(frozen=True)
class StatsLoaded:
    total_profit: float
    trades: int


@dataclass(frozen=True)
class WalletConnected:
    address: str
    balance: str = "0"
    usdc_balance: str = "0"
    chain_id: Optional[int] = None


@dataclass(frozen=True)
class WalletChanged:
    """Account switched in the wallet. Updates state without a log line."""
    address: str
    balance: str = "0"
    usdc_balance: str = "0"


@dataclass(frozen=True)
class WalletDisconnected:
    pass


@dataclass(frozen=True)
class NetworkChanged:
    chain_id: int
    name: str


Event = Union[
    BotStarted, BotStopped, MarketsScanned, NoOpportunities, OpportunityDetected,
    TradeExecuted, SettlementClaimed, LogAppended, ThresholdChanged, StatsLoaded,
    WalletConnected, WalletChanged, WalletDisconnected, NetworkChanged,
]


def format_address(address: str) -> str:
    """Shorten a wallet address for display (0x1234...5678)."""
    if not address:
        return ""
    return f"{address[:6]}...{address[-4:]}"


def format_balance(balance: str, decimals: int = 4) -> str:
    """Format a balance string for display."""
    try:
        return f"{float(balance):.{decimals}f}"
    except (TypeError, ValueError):
        return "0"


def opportunity_message(market: MarketSnapshot) -> str:
    return (
        f"Found arbitrage on {market.name}: YES={market.yes_price:.4f}, "
        f"NO={market.no_price:.4f}, SUM={market.sum:.4f}"
    )


def trade_message(market: MarketSnapshot, profit: float) -> str:
    return f"Executed arbitrage on {market.name}. Profit: ${profit:.2f}"


def no_opportunities_message(markets: int) -> str:
    return f"Scanned {markets} markets. No arbitrage opportunities found."


def settlement_message(amount: float) -> str:
    return f"Claimed winnings from resolved market: ${amount:.2f}"


def _log(state: AppState, entries: EntryFactory, log_type: LogType, message: str) -> AppState:
    return replace(state, log=state.log.append(entries.make(log_type, message)))


def apply_event(state: AppState, event: Event, entries: EntryFactory) -> AppState:
    """Return the state that results from applying ``event`` to ``state``."""
    if isinstance(event, BotStarted):
        state = replace(state, run_state=RunState.RUNNING)
        return _log(state, entries, LogType.INFO, START_MESSAGE)

    if isinstance(event, BotStopped):
        state = replace(state, run_state=RunState.STOPPED)
        return _log(state, entries, LogType.INFO, STOP_MESSAGE)

    if isinstance(event, MarketsScanned):
        return replace(
            state,
            markets=tuple(event.markets),
            stats=activity.record_scan(state.stats, len(event.markets)),
        )

    if isinstance(event, NoOpportunities):
        return _log(state, entries, LogType.INFO, no_opportunities_message(event.markets))

    if isinstance(event, OpportunityDetected):
        state = replace(state, stats=activity.record_opportunity(state.stats))
        return _log(
            state, entries, LogType.ARB_OPPORTUNITY,
            opportunity_message(event.opportunity.market)
        )

    if isinstance(event, TradeExecuted):
        state = replace(state, stats=activity.record_trade(state.stats, event.profit))
        return _log(
            state, entries, LogType.TRADE_EXECUTED,
            trade_message(event.opportunity.market, event.profit)
        )

    if isinstance(event, SettlementClaimed):
        state = replace(state, stats=activity.record_settlement(state.stats, event.amount))
        return _log(state, entries, LogType.SETTLED, settlement_message(event.amount))

    if isinstance(event, LogAppended):
        return _log(state, entries, event.type, event.message)

    if isinstance(event, ThresholdChanged):
        return replace(state, threshold=validate_threshold(event.value))

    if isinstance(event, StatsLoaded):
        return replace(
            state,
            stats=activity.load_history(state.stats, event.total_profit, event.trades),
        )

    if isinstance(event, WalletConnected):
        wallet = WalletInfo(
            address=event.address,
            balance=event.balance,
            usdc_balance=event.usdc_balance,
            chain_id=event.chain_id,
        )
        state = replace(state, wallet=wallet)
        return _log(
            state, entries, LogType.INFO,
            f"Wallet connected: {format_address(event.address)}"
        )

    if isinstance(event, WalletChanged):
        wallet = replace(
            state.wallet,
            address=event.address,
            balance=event.balance,
            usdc_balance=event.usdc_balance,
        )
        return replace(state, wallet=wallet)

    if isinstance(event, WalletDisconnected):
        return replace(state, wallet=WalletInfo())

    if isinstance(event, NetworkChanged):
        state = replace(state, wallet=replace(state.wallet, chain_id=event.chain_id))
        return _log(state, entries, LogType.INFO, f"Wallet network changed to {event.name}.")

    raise TypeError(f"Unknown event: {event!r}")


def initial_state(threshold: float = DEFAULT_ARB_THRESHOLD, log_capacity: int = 100) -> AppState:
    return AppState(
        threshold=validate_threshold(threshold),
        log=ActivityLog(capacity=log_capacity),
    )
