"""
Tests for the dashboard API server.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from arbdash.api.server import create_app
from arbdash.bot import ArbitrageBot
from arbdash.clients.chains import AMOY_TESTNET
from arbdash.clients.wallet import MISSING_WALLET_MESSAGE, WalletService
from arbdash.state import START_MESSAGE, STOP_MESSAGE, MarketsScanned
from conftest import FixedSettlement, RecordingSink, StaticFeed, make_market

ADDRESS = "0x1234567890abcdef1234567890abcdef1234abcd"


def make_bot(config, sink=None, wallet=None) -> ArbitrageBot:
    return ArbitrageBot(
        config=config,
        feed=StaticFeed([make_market(0.45, 0.50)]),
        settlement=FixedSettlement(None),
        sink=sink or RecordingSink(),
        wallet=wallet,
    )


@pytest.fixture
def bot(slow_config):
    return make_bot(slow_config)


@pytest.fixture
def client(bot):
    with TestClient(create_app(bot)) as test_client:
        yield test_client


class TestReadEndpoints:

    def test_health(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["run_state"] == "STOPPED"

    def test_dashboard(self, client):
        data = client.get("/api/dashboard").json()

        assert data["run_state"] == "STOPPED"
        assert data["threshold"] == 0.98
        assert data["markets"] == []
        assert data["logs"] == []
        assert data["stats"] == {
            "total_profit": 0.0,
            "trades_executed": 0,
            "opportunities_detected": 0,
            "markets_scanned": 0,
        }
        assert data["wallet"]["connected"] is False

    def test_stats_loaded_from_history(self, slow_config):
        bot = make_bot(slow_config, sink=RecordingSink(totals=(12.5, 3)))

        with TestClient(create_app(bot)) as client:
            stats = client.get("/api/stats").json()

        assert stats["total_profit"] == 12.5
        assert stats["trades_executed"] == 3

    def test_markets_after_scan(self, client, bot):
        bot.dispatch(MarketsScanned((make_market(0.45, 0.50), make_market(0.5, 0.5, "ETH-15min"))))

        data = client.get("/api/markets").json()

        assert data["count"] == 2
        assert [m["is_opportunity"] for m in data["markets"]] == [True, False]


class TestBotControl:

    def test_toggle(self, client):
        assert client.post("/api/bot/toggle").json()["run_state"] == "RUNNING"
        assert client.post("/api/bot/toggle").json()["run_state"] == "STOPPED"

        logs = client.get("/api/logs").json()
        assert [entry["message"] for entry in logs["logs"]] == [STOP_MESSAGE, START_MESSAGE]

    def test_start_and_stop(self, client):
        assert client.post("/api/bot/start").json()["run_state"] == "RUNNING"
        assert client.post("/api/bot/start").json()["run_state"] == "RUNNING"
        assert client.post("/api/bot/stop").json()["run_state"] == "STOPPED"

        assert client.get("/api/logs").json()["count"] == 2

    def test_logs_limit(self, client):
        client.post("/api/bot/toggle")
        client.post("/api/bot/toggle")

        logs = client.get("/api/logs", params={"limit": 1}).json()["logs"]

        assert len(logs) == 1
        assert logs[0]["message"] == STOP_MESSAGE
        assert logs[0]["type"] == "INFO"


class TestConfigEndpoints:

    def test_get_config(self, client):
        config = client.get("/api/config").json()

        assert config["threshold"] == 0.98
        assert config["min_threshold"] == 0.90
        assert config["max_threshold"] == 0.99

    def test_update_threshold(self, client, bot):
        response = client.put("/api/config", json={"threshold": 0.95})

        assert response.status_code == 200
        assert response.json()["config"]["threshold"] == 0.95
        assert bot.detector.threshold == 0.95

    @pytest.mark.parametrize("body", [{"threshold": 0.5}, {"threshold": "abc"}, {}])
    def test_rejects_invalid_threshold(self, client, body):
        response = client.put("/api/config", json=body)

        assert response.status_code == 400
        assert client.get("/api/config").json()["threshold"] == 0.98


class TestWalletEndpoints:

    def test_no_wallet(self, client):
        data = client.get("/api/wallet").json()

        assert data["connected"] is False
        assert data["available"] is False
        assert data["chain"] is None

    def test_connect_without_wallet(self, client):
        response = client.post("/api/wallet/connect")

        assert response.status_code == 503
        assert response.json()["detail"] == MISSING_WALLET_MESSAGE
        assert client.get("/api/logs").json()["logs"][0]["type"] == "ERROR"

    def test_connect_wallet(self, slow_config):
        wallet = MagicMock(spec=WalletService)
        wallet.available = True
        wallet.chain = AMOY_TESTNET
        wallet.connect = AsyncMock(return_value=ADDRESS)
        wallet.get_balance = AsyncMock(return_value="2.25")
        wallet.get_usdc_balance = AsyncMock(return_value="10.5")
        wallet.get_chain_id = AsyncMock(return_value=80002)
        wallet.stop_watching = AsyncMock()
        bot = make_bot(slow_config, wallet=wallet)

        with TestClient(create_app(bot)) as client:
            connected = client.post("/api/wallet/connect").json()
            info = client.get("/api/wallet").json()

        assert connected["address"] == ADDRESS
        assert connected["display_address"] == "0x1234...abcd"
        assert info["balance"] == "2.25"
        assert info["chain"] == {"id": 80002, "name": "Polygon Amoy Testnet"}
        assert info["usdc_balance"] == "10.5"
        assert info["chain_id"] == 80002

    def test_refresh_balance(self, slow_config):
        wallet = MagicMock(spec=WalletService)
        wallet.available = True
        wallet.chain = AMOY_TESTNET
        wallet.connect = AsyncMock(return_value=ADDRESS)
        wallet.get_balance = AsyncMock(side_effect=["1.0", "3.5"])
        wallet.get_usdc_balance = AsyncMock(return_value="0")
        wallet.get_chain_id = AsyncMock(return_value=80002)
        wallet.stop_watching = AsyncMock()
        bot = make_bot(slow_config, wallet=wallet)

        with TestClient(create_app(bot)) as client:
            client.post("/api/wallet/connect")
            refreshed = client.post("/api/wallet/refresh").json()

        assert refreshed["balance"] == "3.5"


class TestDashboardSocket:

    def test_initial_state_then_push(self, slow_config):
        bot = make_bot(slow_config)

        with TestClient(create_app(bot)) as client:
            with client.websocket_connect("/ws") as websocket:
                initial = websocket.receive_json()
                client.post("/api/bot/toggle")
                pushed = websocket.receive_json()

        assert initial["run_state"] == "STOPPED"
        assert pushed["run_state"] == "RUNNING"
        assert pushed["logs"][0]["message"] == START_MESSAGE

    def test_ping(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.receive_json()
            websocket.send_text("ping")

            assert websocket.receive_json() == {"type": "pong"}

    def test_disconnect_while_idle_unsubscribes(self, slow_config):
        bot = make_bot(slow_config)

        with TestClient(create_app(bot)) as client:
            with client.websocket_connect("/ws") as websocket:
                websocket.receive_json()
                assert len(bot._subscribers) == 1

        assert bot._subscribers == []
