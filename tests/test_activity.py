"""
Tests for the activity log and stats transitions.
"""

import pytest

from arbdash import activity
from arbdash.activity import ActivityLog, EntryFactory
from arbdash.models import BotStats, LogType


class TestActivityLog:

    def test_newest_first(self, entries):
        log = ActivityLog()
        log = log.append(entries.make(LogType.INFO, "first"))
        log = log.append(entries.make(LogType.INFO, "second"))

        assert [e.message for e in log] == ["second", "first"]
        assert log.head.message == "second"

    def test_append_does_not_mutate(self, entries):
        log = ActivityLog()
        updated = log.append(entries.make(LogType.INFO, "hello"))

        assert len(log) == 0
        assert len(updated) == 1

    def test_capacity_drops_oldest(self, entries):
        """101 inserts keep 100 entries and drop the very first one."""
        log = ActivityLog(capacity=100)
        for i in range(101):
            log = log.append(entries.make(LogType.INFO, f"entry {i}"))

        assert len(log) == 100
        assert log.head.message == "entry 100"
        assert log.latest()[-1].message == "entry 1"
        assert all(e.message != "entry 0" for e in log)

    def test_latest_limit(self, entries):
        log = ActivityLog()
        for i in range(5):
            log = log.append(entries.make(LogType.INFO, f"entry {i}"))

        assert [e.message for e in log.latest(2)] == ["entry 4", "entry 3"]
        assert log.latest(0) == []
        assert len(log.latest()) == 5

    def test_count_by_type(self, entries):
        log = ActivityLog()
        log = log.append(entries.make(LogType.INFO, "a"))
        log = log.append(entries.make(LogType.ERROR, "b"))
        log = log.append(entries.make(LogType.INFO, "c"))

        assert log.count(LogType.INFO) == 2
        assert log.count(LogType.ERROR) == 1
        assert log.count(LogType.SETTLED) == 0

    def test_empty_head(self):
        assert ActivityLog().head is None


class TestEntryFactory:

    def test_ids_unique(self):
        factory = EntryFactory()
        ids = {factory.make(LogType.INFO, "x").id for _ in range(500)}
        assert len(ids) == 500

    def test_ids_count_within_session(self):
        factory = EntryFactory()
        first = factory.make(LogType.INFO, "a").id
        second = factory.make(LogType.INFO, "b").id
        other_session = EntryFactory().make(LogType.INFO, "a").id

        assert first.endswith("-1")
        assert second.endswith("-2")
        assert first.rsplit("-", 1)[0] == second.rsplit("-", 1)[0]
        assert other_session != first

    def test_entry_fields(self):
        entry = EntryFactory().make(LogType.SETTLED, "paid")

        assert entry.type == LogType.SETTLED
        assert entry.message == "paid"
        assert entry.timestamp.tzinfo is not None
        assert entry.to_dict()["type"] == "SETTLED"


class TestStatsTransitions:

    def test_record_scan(self):
        stats = activity.record_scan(BotStats(), 5)
        stats = activity.record_scan(stats, 5)
        assert stats.markets_scanned == 10

    def test_record_trade(self):
        stats = activity.record_trade(BotStats(), 5.0)

        assert stats.trades_executed == 1
        assert stats.total_profit == pytest.approx(5.0)

    def test_record_settlement_adds_profit_only(self):
        stats = activity.record_settlement(BotStats(trades_executed=2), 12.5)

        assert stats.total_profit == pytest.approx(12.5)
        assert stats.trades_executed == 2

    def test_load_history_replaces_counters(self):
        stats = BotStats(total_profit=3.0, trades_executed=1, opportunities_detected=4)
        stats = activity.load_history(stats, total_profit=120.0, trades=7)

        assert stats.total_profit == 120.0
        assert stats.trades_executed == 7
        assert stats.opportunities_detected == 4

    def test_to_dict_rounds_profit(self):
        assert BotStats(total_profit=1.23456).to_dict()["total_profit"] == 1.23
