"""
Wallet and network client.

Reads accounts from the operator's wallet over JSON-RPC and balances from
the public Polygon RPC. No signing or transaction logic lives here.
"""

import asyncio
from decimal import Decimal
from typing import Any, Callable, Optional

from web3 import Web3

from ..utils.logger import get_logger
from .chains import AMOY_TESTNET, ChainConfig

logger = get_logger("wallet")

# EIP-1193 error code: chain not added to the wallet yet
UNRECOGNIZED_CHAIN = 4902

MISSING_WALLET_MESSAGE = "Please install MetaMask or another Web3 wallet!"

# ERC-20 subset used to read the USDC balance
USDC_ABI = [
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function"
    }
]


class WalletRPCError(RuntimeError):
    """JSON-RPC error returned by the wallet."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code


class WalletService:
    """
    Client for the operator's wallet.

    Handles:
    - Account access (connect, connected check, account-change watching)
    - Network switching to the configured Polygon chain
    - Native and USDC balance queries
    - Chain-change watching
    """

    def __init__(
        self,
        chain: ChainConfig = AMOY_TESTNET,
        provider_url: Optional[str] = None,
        rpc_url: Optional[str] = None,
        usdc_address: Optional[str] = None,
        poll_interval_seconds: float = 2.0
    ):
        """
        Initialize wallet client.

        Args:
            chain: Network the wallet should be on
            provider_url: JSON-RPC endpoint of the wallet; None if no wallet is available
            rpc_url: Read-only RPC for balances (defaults to the chain's public RPC)
            usdc_address: USDC contract (defaults to the chain's; none on testnets)
            poll_interval_seconds: Account watcher polling interval
        """
        self.chain = chain
        self.provider_url = provider_url
        self.poll_interval_seconds = poll_interval_seconds

        self._rpc = Web3(Web3.HTTPProvider(rpc_url or chain.rpc_url))
        self._wallet: Optional[Web3] = (
            Web3(Web3.HTTPProvider(provider_url)) if provider_url else None
        )

        usdc_address = usdc_address or chain.usdc_address
        self._usdc_contract = (
            self._rpc.eth.contract(
                address=Web3.to_checksum_address(usdc_address), abi=USDC_ABI
            )
            if usdc_address else None
        )

        self._listeners: list[Callable[[list[str]], Any]] = []
        self._chain_listeners: list[Callable[[int], Any]] = []
        self._watch_task: Optional[asyncio.Task] = None
        self._last_accounts: Optional[list[str]] = None
        self._last_chain_id: Optional[int] = None

    @property
    def available(self) -> bool:
        """Whether a wallet provider is configured."""
        return self._wallet is not None

    async def _wallet_request(self, method: str, params: Optional[list] = None):
        """Send a raw JSON-RPC request to the wallet."""
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self._wallet.provider.make_request(method, params or [])
        )
        if response.get("error"):
            error = response["error"]
            raise WalletRPCError(error.get("code", -1), error.get("message", "RPC error"))
        return response.get("result")

    async def get_accounts(self) -> list[str]:
        """Accounts the wallet already exposes, without prompting."""
        if not self.available:
            return []
        return list(await self._wallet_request("eth_accounts") or [])

    async def is_connected(self) -> bool:
        """Check if the wallet exposes at least one account."""
        try:
            return len(await self.get_accounts()) > 0
        except Exception as e:
            logger.error(f"Error checking wallet connection: {e}")
            return False

    async def connect(self) -> Optional[str]:
        """
        Request account access and switch the wallet to the configured chain.

        Returns:
            The first account, or None when no wallet is available or the
            request fails
        """
        if not self.available:
            logger.warning(MISSING_WALLET_MESSAGE)
            return None

        try:
            accounts = await self._wallet_request("eth_requestAccounts")
            if not accounts:
                logger.warning("Wallet returned no accounts")
                return None

            await self._switch_network()
            return accounts[0]

        except Exception as e:
            logger.error(f"Error connecting wallet: {e}")
            return None

    async def _switch_network(self) -> None:
        try:
            await self._wallet_request(
                "wallet_switchEthereumChain", [{"chainId": self.chain.hex_id}]
            )
        except WalletRPCError as e:
            if e.code != UNRECOGNIZED_CHAIN:
                raise
            await self._wallet_request("wallet_addEthereumChain", [{
                "chainId": self.chain.hex_id,
                "chainName": self.chain.name,
                "rpcUrls": [self.chain.rpc_url],
                "blockExplorerUrls": [self.chain.block_explorer],
                "nativeCurrency": {
                    "name": self.chain.native_symbol,
                    "symbol": self.chain.native_symbol,
                    "decimals": self.chain.native_decimals,
                },
            }])

    async def get_balance(self, address: str) -> str:
        """Native balance formatted in ether units; "0" on any error."""
        if not address:
            return "0"

        loop = asyncio.get_running_loop()
        try:
            balance_wei = await loop.run_in_executor(
                None,
                lambda: self._rpc.eth.get_balance(Web3.to_checksum_address(address))
            )
            return str(Web3.from_wei(balance_wei, "ether"))
        except Exception as e:
            logger.error(f"Error getting balance: {e}")
            return "0"

    async def get_usdc_balance(self, address: str) -> str:
        """USDC balance in token units; "0" without a contract or on any error."""
        if not address or not self._usdc_contract:
            return "0"

        loop = asyncio.get_running_loop()
        try:
            checksum = Web3.to_checksum_address(address)
            raw = await loop.run_in_executor(
                None,
                lambda: self._usdc_contract.functions.balanceOf(checksum).call()
            )
            decimals = await loop.run_in_executor(
                None,
                lambda: self._usdc_contract.functions.decimals().call()
            )
            return str(Decimal(raw) / (Decimal(10) ** decimals))
        except Exception as e:
            logger.error(f"Error getting USDC balance: {e}")
            return "0"

    async def get_chain_id(self) -> Optional[int]:
        """Chain the wallet is currently on."""
        if not self.available:
            return None
        try:
            return int(await self._wallet_request("eth_chainId"), 16)
        except Exception as e:
            logger.error(f"Error getting network: {e}")
            return None

    def on_accounts_changed(self, callback: Callable[[list[str]], Any]) -> None:
        """Register a callback fired with the new account list on change."""
        self._listeners.append(callback)

    def on_chain_changed(self, callback: Callable[[int], Any]) -> None:
        """Register a callback fired with the new chain id on change."""
        self._chain_listeners.append(callback)

    def start_watching(self) -> None:
        """Start polling the wallet for account and chain changes."""
        if not self.available or self._watch_task:
            return
        self._watch_task = asyncio.create_task(self._watch())

    async def stop_watching(self) -> None:
        if self._watch_task:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

    async def _watch(self) -> None:
        while True:
            await self.poll_accounts()
            await self.poll_chain()
            await asyncio.sleep(self.poll_interval_seconds)

    async def poll_accounts(self) -> None:
        """Check accounts once and notify listeners if they changed."""
        try:
            accounts = await self.get_accounts()
        except Exception as e:
            logger.debug(f"Account poll failed: {e}")
            return

        if self._last_accounts is not None and accounts != self._last_accounts:
            for callback in self._listeners:
                result = callback(accounts)
                if asyncio.iscoroutine(result):
                    await result
        self._last_accounts = accounts

    async def poll_chain(self) -> None:
        """Check the wallet's chain once and notify listeners if it changed."""
        chain_id = await self.get_chain_id()
        if chain_id is None:
            return

        if self._last_chain_id is not None and chain_id != self._last_chain_id:
            logger.info("Wallet network changed", extra={"chain_id": chain_id})
            for callback in self._chain_listeners:
                result = callback(chain_id)
                if asyncio.iscoroutine(result):
                    await result
        self._last_chain_id = chain_id

