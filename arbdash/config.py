"""
Configuration module for the Polymarket arbitrage dashboard.
Loads settings from environment variables with validation.
"""

import os
from dataclasses import dataclass, field
from typing import Optional
from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

# Operator-adjustable range for the YES+NO sum threshold
MIN_ARB_THRESHOLD = 0.90
MAX_ARB_THRESHOLD = 0.99
DEFAULT_ARB_THRESHOLD = 0.98


@dataclass
class BotConfig:
    """Scan loop and simulation parameters."""
    arb_threshold: float = DEFAULT_ARB_THRESHOLD
    scan_interval_seconds: float = 2.0
    execution_delay_seconds: float = 0.5
    position_size_usd: float = 100.0  # Simulated position behind each fill
    settlement_probability: float = 0.1
    settlement_min_usd: float = 5.0
    settlement_max_usd: float = 25.0
    log_capacity: int = 100
    market_feed: str = "random"  # random, gamma
    symbols: list[str] = field(
        default_factory=lambda: ["BTC", "ETH", "SOL", "MATIC", "AVAX"]
    )


@dataclass
class PolymarketConfig:
    """Polymarket API configuration."""
    api_key: str = ""
    api_secret: str = ""
    api_passphrase: str = ""
    private_key: str = ""

    # API endpoints
    gamma_url: str = "https://gamma-api.polymarket.com"
    clob_url: str = "https://clob.polymarket.com"
    ws_url: str = "wss://ws-subscriptions-clob.polymarket.com/ws/market"

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key and self.api_secret)


@dataclass
class WalletConfig:
    """Wallet and network configuration."""
    use_testnet: bool = True
    polygon_rpc_url: str = ""
    provider_url: str = ""  # JSON-RPC endpoint of the operator's wallet
    usdc_address: str = ""  # Overrides the chain's USDC contract


@dataclass
class StorageConfig:
    """Persistence sink configuration."""
    backend: str = "none"  # none, sqlite, supabase
    supabase_url: str = ""
    supabase_key: str = ""
    sqlite_path: str = "data/arbdash.db"


@dataclass
class LogConfig:
    """Logging configuration."""
    log_level: str = "INFO"
    json_logging: bool = True


@dataclass
class ServerConfig:
    """Dashboard API server configuration."""
    host: str = "0.0.0.0"
    port: int = 8000


@dataclass
class Config:
    """Main configuration container."""
    bot: BotConfig
    polymarket: PolymarketConfig
    wallet: WalletConfig
    storage: StorageConfig
    logging: LogConfig
    server: ServerConfig


def get_env(key: str, default: Optional[str] = None, required: bool = True) -> str:
    """Get environment variable with validation."""
    value = os.getenv(key, default)
    if required and not value:
        raise ValueError(f"Required environment variable {key} is not set")
    return value or ""


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes")


def get_env_int(key: str, default: int) -> int:
    """Get integer environment variable."""
    value = os.getenv(key, str(default))
    return int(value)


def get_env_float(key: str, default: float) -> float:
    """Get float environment variable."""
    value = os.getenv(key, str(default))
    return float(value)


def get_env_list(key: str, default: list[str]) -> list[str]:
    """Get comma-separated list environment variable."""
    value = os.getenv(key)
    if not value:
        return list(default)
    return [item.strip().upper() for item in value.split(",") if item.strip()]


def validate_threshold(value: float) -> float:
    """Ensure an arbitrage threshold lies in the operator-adjustable range."""
    value = float(value)
    if not MIN_ARB_THRESHOLD <= value <= MAX_ARB_THRESHOLD:
        raise ValueError(
            f"Arbitrage threshold {value} outside "
            f"[{MIN_ARB_THRESHOLD:.2f}, {MAX_ARB_THRESHOLD:.2f}]"
        )
    return value


def load_config() -> Config:
    """Load and validate configuration from environment."""
    bot = BotConfig(
        arb_threshold=validate_threshold(
            get_env_float("ARB_THRESHOLD", DEFAULT_ARB_THRESHOLD)
        ),
        scan_interval_seconds=get_env_float("SCAN_INTERVAL_SECONDS", 2.0),
        execution_delay_seconds=get_env_float("EXECUTION_DELAY_SECONDS", 0.5),
        position_size_usd=get_env_float("POSITION_SIZE_USD", 100.0),
        settlement_probability=get_env_float("SETTLEMENT_PROBABILITY", 0.1),
        log_capacity=get_env_int("LOG_CAPACITY", 100),
        symbols=get_env_list("MARKET_SYMBOLS", BotConfig().symbols),
        market_feed=get_env("MARKET_FEED", "random", required=False).lower(),
    )

    if bot.scan_interval_seconds <= 0:
        raise ValueError("SCAN_INTERVAL_SECONDS must be positive")
    if bot.execution_delay_seconds < 0:
        raise ValueError("EXECUTION_DELAY_SECONDS must not be negative")
    if not 0.0 <= bot.settlement_probability <= 1.0:
        raise ValueError("SETTLEMENT_PROBABILITY must be between 0 and 1")
    if bot.log_capacity <= 0:
        raise ValueError("LOG_CAPACITY must be positive")
    if bot.market_feed not in ("random", "gamma"):
        raise ValueError(f"Unknown MARKET_FEED: {bot.market_feed}")

    storage = StorageConfig(
        backend=get_env("STORAGE_BACKEND", "none", required=False).lower(),
        supabase_url=get_env("SUPABASE_URL", required=False),
        supabase_key=get_env("SUPABASE_ANON_KEY", required=False),
        sqlite_path=get_env("SQLITE_PATH", "data/arbdash.db", required=False),
    )
    if storage.backend not in ("none", "sqlite", "supabase"):
        raise ValueError(f"Unknown STORAGE_BACKEND: {storage.backend}")

    return Config(
        bot=bot,
        polymarket=PolymarketConfig(
            api_key=get_env("POLYMARKET_API_KEY", required=False),
            api_secret=get_env("POLYMARKET_API_SECRET", required=False),
            api_passphrase=get_env("POLYMARKET_API_PASSPHRASE", required=False),
            private_key=get_env("PRIVATE_KEY", required=False),
            gamma_url=get_env(
                "POLYMARKET_API_URL", "https://gamma-api.polymarket.com", required=False
            ),
            clob_url=get_env(
                "POLYMARKET_CLOB_API_URL", "https://clob.polymarket.com", required=False
            ),
            ws_url=get_env(
                "POLYMARKET_WS_URL",
                "wss://ws-subscriptions-clob.polymarket.com/ws/market",
                required=False
            ),
        ),
        wallet=WalletConfig(
            use_testnet=get_env_bool("USE_TESTNET", True),
            polygon_rpc_url=get_env("POLYGON_RPC_URL", required=False),
            provider_url=get_env("WALLET_PROVIDER_URL", required=False),
            usdc_address=get_env("USDC_ADDRESS", required=False),
        ),
        storage=storage,
        logging=LogConfig(
            log_level=get_env("LOG_LEVEL", "INFO", required=False),
            json_logging=get_env_bool("JSON_LOGGING", True),
        ),
        server=ServerConfig(
            host=get_env("HOST", "0.0.0.0", required=False),
            port=get_env_int("PORT", 8000),
        ),
    )
