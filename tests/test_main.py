"""
Tests for application wiring.
"""

from arbdash.config import (
    BotConfig,
    Config,
    LogConfig,
    PolymarketConfig,
    ServerConfig,
    StorageConfig,
    WalletConfig,
)
from arbdash.feeds import GammaMarketFeed, RandomMarketFeed
from arbdash.main import build_bot
from arbdash.storage import NullSink, SQLiteSink


def make_config(**bot_overrides) -> Config:
    return Config(
        bot=BotConfig(**bot_overrides),
        polymarket=PolymarketConfig(),
        wallet=WalletConfig(),
        storage=StorageConfig(),
        logging=LogConfig(),
        server=ServerConfig(),
    )


def test_build_default_bot():
    bot = build_bot(make_config())

    assert isinstance(bot.feed, RandomMarketFeed)
    assert isinstance(bot.sink, NullSink)
    assert bot.wallet.available is False
    assert bot.wallet.chain.id == 80002
    assert bot.state.threshold == 0.98


def test_build_gamma_bot():
    bot = build_bot(make_config(market_feed="gamma", arb_threshold=0.95))

    assert isinstance(bot.feed, GammaMarketFeed)
    assert bot.feed.api.use_mock is False
    assert bot.detector.threshold == 0.95


def test_build_sqlite_bot(tmp_path):
    config = make_config()
    config.storage = StorageConfig(backend="sqlite", sqlite_path=str(tmp_path / "bot.db"))
    config.wallet = WalletConfig(use_testnet=False, provider_url="http://localhost:8545")

    bot = build_bot(config)

    assert isinstance(bot.sink, SQLiteSink)
    assert bot.wallet.available is True
    assert bot.wallet.chain.id == 137
