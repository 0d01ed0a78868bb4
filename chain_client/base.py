"""
Chain Client - Abstract Interface.

============================================================
RESPONSIBILITY
============================================================
Capability-typed contract between the harness and the chain.

The harness never builds, signs or encodes transactions itself;
a backend does. Two backends ship:

- SimulatedChainClient: in-memory ledger (tests, dry runs)
- GatewayChainClient: JSON-RPC to an external signing gateway

============================================================
ERROR CONTRACT
============================================================
Contract failures raise ChainClientError with the runtime's
message text (which carries "Custom(N)"). Unknown pools raise
PoolNotFoundError. Nothing else is promised.

============================================================
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from core.constants import BURN_ADDRESS
from pools.models import PoolState, SwapDirection

from .models import (
    CoreWallet,
    DepositResult,
    SwapResult,
    TransactionResult,
    Wallet,
    WithdrawalResult,
)


class ChainClient(ABC):
    """Abstract async chain client."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for logs."""
        pass

    # --------------------------------------------------------
    # WALLETS
    # --------------------------------------------------------

    @abstractmethod
    async def generate_wallet(self) -> Wallet:
        pass

    @abstractmethod
    async def restore_wallet(self, private_key: bytes) -> Wallet:
        pass

    @abstractmethod
    async def get_or_create_core_wallet(self) -> CoreWallet:
        pass

    # --------------------------------------------------------
    # BALANCES / STATE
    # --------------------------------------------------------

    @abstractmethod
    async def get_native_balance(self, address: str) -> int:
        pass

    @abstractmethod
    async def get_token_balance(self, address: str, mint: str) -> int:
        pass

    @abstractmethod
    async def get_pool_state(self, pool_id: str) -> PoolState:
        """
        Raises:
            PoolNotFoundError: If the pool does not exist
        """
        pass

    @abstractmethod
    async def is_pool_paused(self, pool_id: str) -> bool:
        pass

    @abstractmethod
    async def is_system_paused(self) -> bool:
        pass

    @abstractmethod
    async def are_pool_swaps_paused(self, pool_id: str) -> bool:
        pass

    @abstractmethod
    async def get_contract_version(self) -> Optional[str]:
        pass

    # --------------------------------------------------------
    # POOL OPERATIONS
    # --------------------------------------------------------

    @abstractmethod
    async def execute_deposit(
        self,
        wallet: Wallet,
        pool_id: str,
        token_mint: str,
        amount: int,
        compute_units: int,
    ) -> DepositResult:
        pass

    @abstractmethod
    async def execute_withdrawal(
        self,
        wallet: Wallet,
        pool_id: str,
        lp_mint: str,
        lp_amount: int,
        compute_units: int,
    ) -> WithdrawalResult:
        pass

    @abstractmethod
    async def execute_swap(
        self,
        wallet: Wallet,
        pool_id: str,
        direction: SwapDirection,
        input_amount: int,
        minimum_output: int,
        compute_units: int,
    ) -> SwapResult:
        pass

    # --------------------------------------------------------
    # TOKEN / NATIVE TRANSFERS
    # --------------------------------------------------------

    @abstractmethod
    async def mint_tokens(self, mint: str, destination: str, amount: int) -> str:
        """Mint test tokens to an address. Returns the signature."""
        pass

    @abstractmethod
    async def transfer_tokens(
        self,
        wallet: Wallet,
        mint: str,
        destination: str,
        amount: int,
    ) -> str:
        pass

    async def burn_tokens(
        self,
        wallet: Wallet,
        mint: str,
        amount: int,
        destination: str = BURN_ADDRESS,
    ) -> str:
        """Irreversibly send tokens to an unspendable address."""
        return await self.transfer_tokens(wallet, mint, destination, amount)

    @abstractmethod
    async def transfer_native(self, wallet: Wallet, destination: str, lamports: int) -> str:
        pass

    @abstractmethod
    async def submit_transaction(
        self,
        wallet: Wallet,
        transaction: Dict[str, Any],
    ) -> TransactionResult:
        """Submit and confirm a prepared transaction."""
        pass

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    @abstractmethod
    async def is_healthy(self) -> bool:
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None


__all__ = ["ChainClient"]
