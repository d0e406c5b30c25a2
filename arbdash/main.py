"""
Main entry point for the Polymarket arbitrage dashboard.
Wires configuration, collaborators and the bot into the API server.
"""

import sys

# Use uvloop for better performance on Linux
try:
    import uvloop  # noqa: F401
    LOOP = "uvloop"
except ImportError:
    LOOP = "asyncio"  # uvloop not available (Windows)

import uvicorn
from fastapi import FastAPI

from .api.server import create_app
from .bot import ArbitrageBot
from .clients.chains import get_active_chain
from .clients.polymarket_api import PolymarketAPI
from .clients.wallet import WalletService
from .config import Config, load_config
from .feeds.market_feed import GammaMarketFeed, MarketFeed, RandomMarketFeed
from .storage import create_sink
from .utils.logger import setup_logging, get_logger

logger = get_logger("main")


def build_feed(config: Config) -> MarketFeed:
    """Market feed selected by MARKET_FEED."""
    if config.bot.market_feed == "gamma":
        api = PolymarketAPI(config.polymarket, use_mock=False)
        return GammaMarketFeed(api)
    return RandomMarketFeed(symbols=tuple(config.bot.symbols))


def build_bot(config: Config) -> ArbitrageBot:
    """Create the bot and its collaborators from configuration."""
    wallet = WalletService(
        chain=get_active_chain(config.wallet.use_testnet),
        provider_url=config.wallet.provider_url or None,
        rpc_url=config.wallet.polygon_rpc_url or None,
        usdc_address=config.wallet.usdc_address or None
    )
    if not wallet.available:
        logger.warning("WALLET_PROVIDER_URL not set - wallet connection disabled")

    return ArbitrageBot(
        config=config.bot,
        feed=build_feed(config),
        sink=create_sink(config.storage),
        wallet=wallet
    )


def build_app(config: Config) -> FastAPI:
    return create_app(build_bot(config))


def main() -> None:
    """Main entry point."""
    # Load configuration
    try:
        config = load_config()
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    # Set up logging
    setup_logging(
        level=config.logging.log_level,
        json_format=config.logging.json_logging
    )

    logger.info(
        "Starting Polymarket arbitrage dashboard",
        extra={
            "threshold": config.bot.arb_threshold,
            "feed": config.bot.market_feed,
            "storage": config.storage.backend,
            "port": config.server.port
        }
    )

    app = build_app(config)
    # uvicorn handles SIGINT/SIGTERM and runs the app lifespan shutdown
    uvicorn.run(app, host=config.server.host, port=config.server.port, loop=LOOP)


if __name__ == "__main__":
    main()
