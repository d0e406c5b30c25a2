"""
Supabase sink writing to the hosted PostgREST endpoint.
"""

from datetime import datetime
from typing import Any, Optional

import aiohttp

from .sink import LOG_TABLE, TRADE_TABLE, PersistenceSink, logger


class SupabaseSink(PersistenceSink):
    """
    Sink for a hosted Supabase project.

    Rows are inserted through ``/rest/v1/<table>`` with the anon key; the
    only read is the startup aggregation over the trade table.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout_seconds: Optional[float] = None
    ):
        """
        Initialize Supabase sink.

        Args:
            url: Project URL (https://<ref>.supabase.co)
            anon_key: Public anon API key
            timeout_seconds: Optional request timeout; None waits indefinitely
        """
        if not url or not anon_key:
            logger.warning("Supabase credentials not found. Please check your .env file.")
        self.base_url = url.rstrip("/")
        self.anon_key = anon_key
        self.timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if not self._session:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            self._session = aiohttp.ClientSession(headers=self.headers, timeout=timeout)
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _insert(self, table: str, row: dict[str, Any]) -> None:
        session = await self._get_session()
        url = f"{self.base_url}/rest/v1/{table}"
        async with session.post(url, json=row) as response:
            response.raise_for_status()

    async def insert_log(self, log_type: str, message: str, timestamp: datetime) -> None:
        await self._insert(LOG_TABLE, {
            "type": log_type,
            "message": message,
            "timestamp": timestamp.isoformat(),
        })

    async def insert_trade(
        self,
        market_id: str,
        trade_type: str,
        profit: float,
        yes_price: float,
        no_price: float,
        total: float
    ) -> None:
        await self._insert(TRADE_TABLE, {
            "market_id": market_id,
            "type": trade_type,
            "profit": profit,
            "yes_price": yes_price,
            "no_price": no_price,
            "sum": total,
        })

    async def load_trade_totals(self) -> tuple[float, int]:
        session = await self._get_session()
        url = f"{self.base_url}/rest/v1/{TRADE_TABLE}"
        async with session.get(url, params={"select": "profit"}) as response:
            response.raise_for_status()
            rows = await response.json()

        total_profit = sum(float(row.get("profit") or 0) for row in rows)
        return total_profit, len(rows)
