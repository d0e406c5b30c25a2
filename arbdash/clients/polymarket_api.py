"""
Polymarket API client for market data, order books and orders.

Runs in mock mode by default, returning fabricated markets so the
dashboard works without network access or credentials. Pass
``use_mock=False`` to query the Gamma and CLOB APIs.
"""

import asyncio
import json
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional

import aiohttp
from py_clob_client.client import ClobClient
from py_clob_client.clob_types import ApiCreds, OrderArgs, OrderType
from py_clob_client.order_builder.constants import BUY, SELL

from ..arbitrage.detector import detect_opportunities
from ..config import DEFAULT_ARB_THRESHOLD, PolymarketConfig
from ..models import ArbitrageOpportunity, MarketSnapshot
from ..utils.logger import get_logger

logger = get_logger("polymarket")

MOCK_SYMBOLS = ("BTC", "ETH", "SOL", "MATIC", "AVAX")


class TradingCredentialsError(RuntimeError):
    """Raised when an order is attempted without API credentials."""


@dataclass
class OutcomeToken:
    """Token (outcome) information."""
    token_id: str
    outcome: str  # "Yes" or "No" or custom outcome name
    price: Optional[float] = None  # None when the API gave no usable price
    winner: Optional[bool] = None


@dataclass
class PolymarketMarket:
    """Market information."""
    id: str
    condition_id: str
    question: str
    tokens: list[OutcomeToken] = field(default_factory=list)
    description: str = ""
    end_date_iso: str = ""
    status: str = "active"  # active, closed, resolved, paused
    volume: float = 0.0
    liquidity: float = 0.0
    created_at: str = ""

    def get_token(self, outcome: str) -> Optional[OutcomeToken]:
        """Find a token by outcome name, case-insensitive."""
        for token in self.tokens:
            if token.outcome.lower() == outcome.lower():
                return token
        return None

    def to_snapshot(self) -> Optional[MarketSnapshot]:
        """Map a YES/NO market to a snapshot; None for any other shape."""
        yes_token = self.get_token("yes")
        no_token = self.get_token("no")
        if not yes_token or not no_token:
            return None
        # Unpriced outcomes would read as a free arbitrage
        if yes_token.price is None or no_token.price is None:
            return None
        if yes_token.price <= 0 or no_token.price <= 0:
            return None
        return MarketSnapshot(
            id=self.id,
            name=self.question,
            yes_price=yes_token.price,
            no_price=no_token.price,
            volume_24h=int(self.volume),
        )


@dataclass
class OrderBookLevel:
    """Single level in the order book."""
    price: float
    size: float


@dataclass
class OrderBook:
    """Order book state for one token."""
    market: str
    asset_id: str
    bids: list[OrderBookLevel] = field(default_factory=list)
    asks: list[OrderBookLevel] = field(default_factory=list)
    timestamp: float = 0.0

    @property
    def best_bid(self) -> Optional[float]:
        if self.bids:
            return max(level.price for level in self.bids)
        return None

    @property
    def best_ask(self) -> Optional[float]:
        if self.asks:
            return min(level.price for level in self.asks)
        return None


@dataclass
class Order:
    """Result of an order placement."""
    id: str
    market: str
    asset_id: str
    type: str  # market, limit
    side: str  # buy, sell
    price: float
    size: float
    status: str  # pending, filled, cancelled, failed
    filled_size: float = 0.0
    timestamp: float = 0.0


@dataclass
class Position:
    """Holding in one token."""
    market: str
    asset_id: str
    size: float
    average_price: float
    current_price: float
    unrealized_pnl: float


class PolymarketAPI:
    """
    Client for the Polymarket Gamma and CLOB APIs.

    Market data endpoints need no authentication. Order placement needs
    an API key and secret and fails immediately without them.
    """

    def __init__(
        self,
        config: Optional[PolymarketConfig] = None,
        use_mock: bool = True,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize API client.

        Args:
            config: Endpoints and credentials
            use_mock: Return fabricated data instead of calling the APIs
            rng: Random source for mock data
        """
        self.config = config or PolymarketConfig()
        self.use_mock = use_mock
        self.rng = rng or random.Random()
        self._session: Optional[aiohttp.ClientSession] = None
        self._clob_client = None

    async def initialize(self) -> None:
        """Initialize HTTP session."""
        if not self._session:
            self._session = aiohttp.ClientSession()
        logger.info("Polymarket API client initialized", extra={"mock": self.use_mock})

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def _request(
        self,
        url: str,
        params: Optional[dict] = None,
        method: str = "GET",
        payload: Optional[dict] = None
    ):
        """Make HTTP request and decode the JSON body."""
        if not self._session:
            await self.initialize()

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            async with self._session.request(
                method, url, params=params, json=payload, headers=headers
            ) as response:
                response.raise_for_status()
                return await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"API request failed: {e}")
            raise

    async def fetch_markets(
        self,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> list[PolymarketMarket]:
        """
        Fetch markets.

        Args:
            status: Only markets in this status (e.g. "active")
            limit: Page size
            offset: Page offset

        Returns:
            List of markets
        """
        if self.use_mock:
            logger.warning("Using mock data. Configure API credentials to use real data.")
            return self._generate_mock_markets()

        params = {}
        if status == "active":
            params.update({"active": "true", "closed": "false"})
        elif status:
            params["status"] = status
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset

        data = await self._request(f"{self.config.gamma_url}/markets", params=params)
        markets = [parse_market(item) for item in data or []]
        logger.info(f"Fetched {len(markets)} markets")
        return markets

    async def fetch_market_by_id(self, market_id: str) -> Optional[PolymarketMarket]:
        """Get a specific market by ID."""
        if self.use_mock:
            markets = await self.fetch_markets()
            return next((m for m in markets if m.id == market_id), None)

        try:
            data = await self._request(f"{self.config.gamma_url}/markets/{market_id}")
        except aiohttp.ClientResponseError as e:
            if e.status == 404:
                return None
            raise
        return parse_market(data) if data else None

    async def fetch_order_book(self, asset_id: str) -> OrderBook:
        """Fetch order book for a specific token."""
        if self.use_mock:
            return OrderBook(
                market=asset_id,
                asset_id=asset_id,
                bids=[
                    OrderBookLevel(price=0.52, size=100),
                    OrderBookLevel(price=0.51, size=200),
                    OrderBookLevel(price=0.50, size=300),
                ],
                asks=[
                    OrderBookLevel(price=0.53, size=100),
                    OrderBookLevel(price=0.54, size=200),
                    OrderBookLevel(price=0.55, size=300),
                ],
                timestamp=time.time(),
            )

        data = await self._request(
            f"{self.config.clob_url}/book", params={"token_id": asset_id}
        )
        return OrderBook(
            market=data.get("market", asset_id),
            asset_id=data.get("asset_id", asset_id),
            bids=[_parse_level(level) for level in data.get("bids", [])],
            asks=[_parse_level(level) for level in data.get("asks", [])],
            timestamp=float(data.get("timestamp") or time.time()),
        )

    async def place_order(
        self,
        market: str,
        asset_id: str,
        side: Literal["buy", "sell"],
        size: float,
        order_type: Literal["market", "limit"] = "limit",
        price: Optional[float] = None
    ) -> Order:
        """
        Place an order on the CLOB.

        Raises:
            TradingCredentialsError: API key or secret is not configured
            ValueError: A limit order has no price
        """
        if not self.config.has_credentials:
            raise TradingCredentialsError(
                "API credentials required for trading. Please configure "
                "POLYMARKET_API_KEY and POLYMARKET_API_SECRET"
            )
        if order_type == "limit" and price is None:
            raise ValueError("Limit orders require a price")

        client = await self._get_clob_client()
        loop = asyncio.get_running_loop()

        order_args = OrderArgs(
            token_id=asset_id,
            price=price if price is not None else 1.0,
            size=size,
            side=BUY if side == "buy" else SELL
        )
        signed_order = await loop.run_in_executor(
            None, lambda: client.create_order(order_args)
        )
        result = await loop.run_in_executor(
            None,
            lambda: client.post_order(
                signed_order,
                orderType=OrderType.GTC if order_type == "limit" else OrderType.FOK
            )
        )

        order_id = result.get("orderID", "")
        logger.info(
            "Order placed successfully",
            extra={"order_id": order_id, "asset_id": asset_id, "side": side, "size": size}
        )
        return Order(
            id=order_id,
            market=market,
            asset_id=asset_id,
            type=order_type,
            side=side,
            price=price or 0.0,
            size=size,
            status="pending" if result.get("success", True) else "failed",
            timestamp=time.time(),
        )

    async def _get_clob_client(self):
        """Create the py-clob-client instance on first use."""
        if self._clob_client is None:
            loop = asyncio.get_running_loop()
            self._clob_client = await loop.run_in_executor(
                None,
                lambda: ClobClient(
                    host=self.config.clob_url,
                    key=self.config.private_key or None,
                    chain_id=137,
                    creds=ApiCreds(
                        api_key=self.config.api_key,
                        api_secret=self.config.api_secret,
                        api_passphrase=self.config.api_passphrase,
                    ),
                )
            )
        return self._clob_client

    async def fetch_positions(self, wallet_address: str) -> list[Position]:
        """Fetch holdings for a wallet; empty when no address is given."""
        if not wallet_address:
            return []

        if self.use_mock:
            logger.warning("Using mock positions data")
            return []

        data = await self._request(
            f"{self.config.clob_url}/positions", params={"wallet": wallet_address}
        )
        return [
            Position(
                market=item.get("market", ""),
                asset_id=item.get("asset_id", ""),
                size=float(item.get("size", 0)),
                average_price=float(item.get("average_price", 0)),
                current_price=float(item.get("current_price", 0)),
                unrealized_pnl=float(item.get("unrealized_pnl", 0)),
            )
            for item in data or []
        ]

    def _generate_mock_markets(self) -> list[PolymarketMarket]:
        now = datetime.now(timezone.utc)
        markets = []

        for index, crypto in enumerate(MOCK_SYMBOLS):
            yes_price = 0.45 + self.rng.random() * 0.1
            no_price = 0.45 + self.rng.random() * 0.1

            markets.append(PolymarketMarket(
                id=f"{crypto.lower()}-15min-{index}",
                condition_id=f"condition-{crypto.lower()}-{index}",
                question=f"Will {crypto} price increase in the next 15 minutes?",
                description=f"Prediction market for {crypto} short-term price movement",
                tokens=[
                    OutcomeToken(token_id=f"{crypto}-yes-{index}", outcome="Yes", price=yes_price),
                    OutcomeToken(token_id=f"{crypto}-no-{index}", outcome="No", price=no_price),
                ],
                end_date_iso=(now + timedelta(minutes=15)).isoformat(),
                status="active",
                volume=float(self.rng.randrange(10000, 60000)),
                liquidity=float(self.rng.randrange(50000, 150000)),
                created_at=(now - timedelta(seconds=self.rng.random() * 86400)).isoformat(),
            ))

        return markets


def detect_arbitrage_opportunities(
    markets: list[PolymarketMarket],
    threshold: float = DEFAULT_ARB_THRESHOLD
) -> list[ArbitrageOpportunity]:
    """Find YES/NO markets priced below threshold; skips non-binary markets."""
    snapshots = [s for s in (m.to_snapshot() for m in markets) if s is not None]
    return detect_opportunities(snapshots, threshold)


def _parse_level(level: dict) -> OrderBookLevel:
    return OrderBookLevel(price=float(level.get("price", 0)), size=float(level.get("size", 0)))


def _parse_list(raw) -> list:
    """Gamma encodes some list fields as JSON strings."""
    if isinstance(raw, list):
        return raw
    if not raw:
        return []
    if raw.startswith("["):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            pass
    return raw.split(",")


def _parse_price(raw) -> Optional[float]:
    """Outcome price, or None when missing or unparseable."""
    try:
        return float(str(raw).strip())
    except (ValueError, TypeError):
        return None


def parse_market(data: dict) -> PolymarketMarket:
    """Parse market from Gamma API response."""
    token_ids = _parse_list(data.get("clobTokenIds", ""))
    outcomes = _parse_list(data.get("outcomes", ""))
    prices = _parse_list(data.get("outcomePrices", ""))

    tokens = []
    for i, token_id in enumerate(token_ids):
        token_id = str(token_id).strip()
        if not token_id:
            continue

        outcome = str(outcomes[i]).strip() if i < len(outcomes) else f"Outcome {i}"
        price = _parse_price(prices[i]) if i < len(prices) else None

        tokens.append(OutcomeToken(token_id=token_id, outcome=outcome, price=price))

    if data.get("closed"):
        status = "closed"
    elif data.get("active", True):
        status = "active"
    else:
        status = "paused"

    return PolymarketMarket(
        id=str(data.get("id", "")),
        condition_id=data.get("conditionId", ""),
        question=data.get("question", ""),
        description=data.get("description", "") or "",
        tokens=tokens,
        end_date_iso=data.get("endDate", "") or "",
        status=status,
        volume=float(data.get("volume") or 0),
        liquidity=float(data.get("liquidity") or 0),
        created_at=data.get("createdAt", "") or "",
    )
