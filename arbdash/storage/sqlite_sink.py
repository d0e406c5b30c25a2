"""
SQLite sink for storing activity logs and simulated trades locally.
"""
import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Union

from .sink import LOG_TABLE, TRADE_TABLE, PersistenceSink, logger


def init_db(db_path: Path) -> None:
    """Initialize the database with required tables."""
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {LOG_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            type TEXT NOT NULL,
            message TEXT NOT NULL,
            timestamp TEXT NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute(f"""
        CREATE TABLE IF NOT EXISTS {TRADE_TABLE} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            market_id TEXT NOT NULL,
            type TEXT NOT NULL,
            profit REAL NOT NULL,
            yes_price REAL NOT NULL,
            no_price REAL NOT NULL,
            sum REAL NOT NULL,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)

    conn.commit()
    conn.close()


class SQLiteSink(PersistenceSink):
    """
    Local file-backed sink.

    Each call opens its own connection on a worker thread so the event
    loop never blocks on disk I/O.
    """

    def __init__(self, db_path: Union[str, Path]):
        self.db_path = Path(db_path)
        init_db(self.db_path)
        logger.info("SQLite sink ready", extra={"path": str(self.db_path)})

    async def _run(self, fn, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, fn, *args)

    def _insert_log(self, log_type: str, message: str, timestamp: str) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                f"INSERT INTO {LOG_TABLE} (type, message, timestamp) VALUES (?, ?, ?)",
                (log_type, message, timestamp)
            )
            conn.commit()
        finally:
            conn.close()

    def _insert_trade(
        self,
        market_id: str,
        trade_type: str,
        profit: float,
        yes_price: float,
        no_price: float,
        total: float
    ) -> None:
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(f"""
                INSERT INTO {TRADE_TABLE} (market_id, type, profit, yes_price, no_price, sum)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (market_id, trade_type, profit, yes_price, no_price, total))
            conn.commit()
        finally:
            conn.close()

    def _load_trade_totals(self) -> tuple[float, int]:
        conn = sqlite3.connect(self.db_path)
        try:
            row = conn.execute(
                f"SELECT COALESCE(SUM(profit), 0), COUNT(*) FROM {TRADE_TABLE}"
            ).fetchone()
        finally:
            conn.close()
        return float(row[0]), int(row[1])

    async def insert_log(self, log_type: str, message: str, timestamp: datetime) -> None:
        await self._run(self._insert_log, log_type, message, timestamp.isoformat())

    async def insert_trade(
        self,
        market_id: str,
        trade_type: str,
        profit: float,
        yes_price: float,
        no_price: float,
        total: float
    ) -> None:
        await self._run(
            self._insert_trade, market_id, trade_type, profit, yes_price, no_price, total
        )

    async def load_trade_totals(self) -> tuple[float, int]:
        return await self._run(self._load_trade_totals)
