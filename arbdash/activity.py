"""
Activity log and running statistics.

The log is a bounded, newest-first journal: once it holds ``capacity``
entries, each new entry silently drops the oldest one. Stats are plain
counters that only ever grow during a session.
"""

import itertools
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterator, Optional

from .models import BotStats, LogEntry, LogType, new_id, utcnow

DEFAULT_LOG_CAPACITY = 100


@dataclass(frozen=True)
class ActivityLog:
    """Immutable bounded journal; ``append`` returns a new log."""
    entries: tuple[LogEntry, ...] = ()
    capacity: int = DEFAULT_LOG_CAPACITY

    def append(self, entry: LogEntry) -> "ActivityLog":
        return replace(self, entries=((entry,) + self.entries)[:self.capacity])

    def latest(self, limit: Optional[int] = None) -> list[LogEntry]:
        if limit is None:
            return list(self.entries)
        return list(self.entries[:max(limit, 0)])

    def count(self, log_type: LogType) -> int:
        return sum(1 for entry in self.entries if entry.type == log_type)

    @property
    def head(self) -> Optional[LogEntry]:
        return self.entries[0] if self.entries else None

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.entries)


class EntryFactory:
    """Creates log entries whose ids never repeat within a session."""

    def __init__(self):
        # Ids are "<session>-<n>"
        self._session = new_id()
        self._counter = itertools.count(1)

    def make(
        self,
        log_type: LogType,
        message: str,
        timestamp: Optional[datetime] = None
    ) -> LogEntry:
        return LogEntry(
            id=f"{self._session}-{next(self._counter)}",
            timestamp=timestamp or utcnow(),
            type=log_type,
            message=message,
        )


# Stats transitions

def record_scan(stats: BotStats, markets: int) -> BotStats:
    return replace(stats, markets_scanned=stats.markets_scanned + markets)


def record_opportunity(stats: BotStats) -> BotStats:
    return replace(stats, opportunities_detected=stats.opportunities_detected + 1)


def record_trade(stats: BotStats, profit: float) -> BotStats:
    return replace(
        stats,
        trades_executed=stats.trades_executed + 1,
        total_profit=stats.total_profit + profit,
    )


def record_settlement(stats: BotStats, amount: float) -> BotStats:
    return replace(stats, total_profit=stats.total_profit + amount)


def load_history(stats: BotStats, total_profit: float, trades: int) -> BotStats:
    """Seed profit and trade count from persisted history."""
    return replace(stats, total_profit=total_profit, trades_executed=trades)
