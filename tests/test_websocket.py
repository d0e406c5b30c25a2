"""
Tests for the market WebSocket client.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from websockets.protocol import State

from arbdash.clients.websocket_client import MarketWebSocket


def open_socket() -> MagicMock:
    ws = MagicMock()
    ws.state = State.OPEN
    ws.send = AsyncMock()
    ws.close = AsyncMock()
    return ws


class TestMessageHandling:

    @pytest.mark.asyncio
    async def test_dispatches_object(self):
        received = []
        client = MarketWebSocket(on_message=received.append)

        await client.handle_raw(json.dumps({"event_type": "book", "market": "m1"}))

        assert received == [{"event_type": "book", "market": "m1"}]

    @pytest.mark.asyncio
    async def test_splits_batched_messages(self):
        received = []
        client = MarketWebSocket(on_message=received.append)

        await client.handle_raw(json.dumps([{"a": 1}, {"b": 2}, "noise"]))

        assert received == [{"a": 1}, {"b": 2}]

    @pytest.mark.asyncio
    async def test_malformed_message_skipped(self):
        handler = MagicMock()
        client = MarketWebSocket(on_message=handler)

        await client.handle_raw("{not json")

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_async_handler(self):
        handler = AsyncMock()
        client = MarketWebSocket(on_message=handler)

        await client.handle_raw('{"x": 1}')

        handler.assert_awaited_once_with({"x": 1})


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_subscribe_requires_open_socket(self):
        client = MarketWebSocket(on_message=MagicMock())

        assert client.is_connected is False
        assert await client.subscribe_to_market("market-1") is False

    @pytest.mark.asyncio
    async def test_subscribe_message(self):
        client = MarketWebSocket(on_message=MagicMock())
        client._ws = open_socket()

        assert await client.subscribe_to_market("market-1", "asset-1") is True

        sent = json.loads(client._ws.send.call_args[0][0])
        assert sent == {
            "type": "subscribe",
            "channel": "book",
            "market": "market-1",
            "asset_id": "asset-1",
        }

    @pytest.mark.asyncio
    async def test_resubscribes_on_connect(self):
        client = MarketWebSocket(on_message=MagicMock())
        client._ws = open_socket()
        await client.subscribe_to_market("market-1")

        new_socket = open_socket()
        with patch("websockets.connect", AsyncMock(return_value=new_socket)):
            await client.connect()

        new_socket.send.assert_awaited_once()
        assert json.loads(new_socket.send.call_args[0][0])["market"] == "market-1"

    @pytest.mark.asyncio
    async def test_disconnect(self):
        client = MarketWebSocket(on_message=MagicMock())
        ws = open_socket()
        client._ws = ws

        await client.disconnect()

        ws.close.assert_awaited_once()
        assert client.is_connected is False


class TestReconnect:

    @pytest.mark.asyncio
    async def test_exponential_backoff(self):
        client = MarketWebSocket(
            on_message=MagicMock(),
            initial_reconnect_delay=1.0,
            max_reconnect_delay=3.0
        )

        with patch("asyncio.sleep", AsyncMock()) as sleep:
            for _ in range(3):
                await client._handle_reconnect()

        assert [c.args[0] for c in sleep.call_args_list] == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        client = MarketWebSocket(on_message=MagicMock(), max_reconnect_attempts=1)

        with patch("asyncio.sleep", AsyncMock()):
            await client._handle_reconnect()
            with pytest.raises(RuntimeError):
                await client._handle_reconnect()
