"""
WebSocket client for Polymarket real-time market updates.
Handles connection, subscription, and message parsing.
"""

import asyncio
import json
from typing import Any, Callable, Optional

import websockets
from websockets.protocol import State

from ..utils.logger import get_logger

logger = get_logger("websocket")


class MarketWebSocket:
    """
    Async WebSocket client for Polymarket market channels.

    Decoded JSON messages are handed to ``on_message`` one object at a
    time; messages that fail to decode are logged and skipped. Reconnects
    with exponential backoff.
    """

    BASE_URL = "wss://ws-subscriptions-clob.polymarket.com/ws/market"

    def __init__(
        self,
        on_message: Callable[[dict], Any],
        on_error: Optional[Callable[[Exception], Any]] = None,
        url: Optional[str] = None,
        max_reconnect_attempts: int = 10,
        initial_reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 60.0
    ):
        """
        Initialize WebSocket client.

        Args:
            on_message: Callback for each decoded message
            on_error: Callback for connection errors
            url: Endpoint override
            max_reconnect_attempts: Maximum reconnection attempts
            initial_reconnect_delay: Initial delay between reconnections
            max_reconnect_delay: Maximum delay between reconnections
        """
        self.on_message = on_message
        self.on_error = on_error
        self.url = url or self.BASE_URL
        self.max_reconnect_attempts = max_reconnect_attempts
        self.initial_reconnect_delay = initial_reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay

        self._ws = None
        self._subscriptions: dict[tuple[str, Optional[str]], dict] = {}
        self._running = False
        self._reconnect_attempts = 0

    @property
    def is_connected(self) -> bool:
        """Check if WebSocket is open."""
        return self._ws is not None and self._ws.state == State.OPEN

    async def connect(self) -> None:
        """Establish WebSocket connection."""
        logger.info("Connecting to Polymarket WebSocket", extra={"url": self.url})

        self._ws = await websockets.connect(
            self.url,
            ping_interval=30,
            ping_timeout=10,
            close_timeout=5
        )
        self._reconnect_attempts = 0
        logger.info("WebSocket connected to Polymarket")

        # Resubscribe if reconnecting
        for message in self._subscriptions.values():
            await self._ws.send(json.dumps(message))

    async def disconnect(self) -> None:
        """Close WebSocket connection."""
        self._running = False
        if self._ws:
            await self._ws.close()
            self._ws = None
        logger.info("WebSocket disconnected")

    async def subscribe_to_market(self, market_id: str, asset_id: Optional[str] = None) -> bool:
        """
        Subscribe to order book updates for a market.

        Returns:
            False if the socket is not open; nothing is sent
        """
        if not self.is_connected:
            return False

        message = {
            "type": "subscribe",
            "channel": "book",
            "market": market_id,
            "asset_id": asset_id,
        }
        await self._ws.send(json.dumps(message))
        self._subscriptions[(market_id, asset_id)] = message
        logger.debug(f"Subscribed to market {market_id}")
        return True

    async def run(self) -> None:
        """
        Main loop - connect and process messages.
        Handles reconnection on disconnect.
        """
        self._running = True

        while self._running:
            try:
                if not self.is_connected:
                    await self.connect()

                await self._process_messages()

            except websockets.ConnectionClosed as e:
                logger.warning(f"WebSocket connection closed: {e}")
                await self._handle_reconnect()

            except (OSError, websockets.WebSocketException) as e:
                logger.error(f"WebSocket error: {e}")
                if self.on_error:
                    await self._call_handler(self.on_error, e)
                await self._handle_reconnect()

    async def _process_messages(self) -> None:
        """Process incoming WebSocket messages."""
        if not self._ws:
            return

        async for message in self._ws:
            await self.handle_raw(message)

    async def handle_raw(self, message: str) -> None:
        """Decode one frame and dispatch each JSON object in it."""
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse WebSocket message: {message[:100]}")
            return

        # Server sometimes batches messages into an array
        items = data if isinstance(data, list) else [data]
        for item in items:
            if isinstance(item, dict):
                await self._call_handler(self.on_message, item)

    async def _call_handler(self, handler: Callable, *args) -> None:
        """Call handler, supporting both sync and async callbacks."""
        result = handler(*args)
        if asyncio.iscoroutine(result):
            await result

    async def _handle_reconnect(self) -> None:
        """Handle reconnection with exponential backoff."""
        self._ws = None
        self._reconnect_attempts += 1

        if self._reconnect_attempts > self.max_reconnect_attempts:
            logger.error("Max reconnection attempts exceeded")
            self._running = False
            raise RuntimeError("Failed to reconnect to WebSocket")

        delay = min(
            self.initial_reconnect_delay * (2 ** (self._reconnect_attempts - 1)),
            self.max_reconnect_delay
        )

        logger.info(
            f"Reconnecting in {delay:.1f}s (attempt {self._reconnect_attempts})"
        )
        await asyncio.sleep(delay)
