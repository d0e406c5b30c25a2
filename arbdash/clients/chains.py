"""
Polygon network configurations and Polymarket contract addresses.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ChainConfig:
    """Network parameters for a wallet/RPC connection."""
    id: int
    name: str
    rpc_url: str
    block_explorer: str
    testnet: bool
    native_symbol: str = "MATIC"
    native_decimals: int = 18
    usdc_address: Optional[str] = None  # Collateral token; unset on testnets

    @property
    def hex_id(self) -> str:
        return hex(self.id)


AMOY_TESTNET = ChainConfig(
    id=80002,
    name="Polygon Amoy Testnet",
    rpc_url="https://rpc-amoy.polygon.technology",
    block_explorer="https://amoy.polygonscan.com",
    testnet=True,
)

# Deprecated by Polygon, kept for wallets still configured for it
MUMBAI_TESTNET = ChainConfig(
    id=80001,
    name="Mumbai",
    rpc_url="https://rpc-mumbai.maticvigil.com",
    block_explorer="https://mumbai.polygonscan.com",
    testnet=True,
)

POLYGON_CONTRACTS = {
    "CTF_EXCHANGE": "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
    "USDC": "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
    "CONDITIONAL_TOKENS": "0x4D97DCd97eC945f40cF65F87097ACe5EA0476045",
}

POLYGON_MAINNET = ChainConfig(
    id=137,
    name="Polygon Mainnet",
    rpc_url="https://polygon-rpc.com",
    block_explorer="https://polygonscan.com",
    testnet=False,
    usdc_address=POLYGON_CONTRACTS["USDC"],
)

SUPPORTED_CHAINS = (AMOY_TESTNET, MUMBAI_TESTNET, POLYGON_MAINNET)


def get_chain(chain_id: int) -> Optional[ChainConfig]:
    """Known chain for an id, or None."""
    for chain in SUPPORTED_CHAINS:
        if chain.id == chain_id:
            return chain
    return None


def get_active_chain(use_testnet: bool = True) -> ChainConfig:
    """Amoy when running against testnet, Polygon mainnet otherwise."""
    return AMOY_TESTNET if use_testnet else POLYGON_MAINNET

