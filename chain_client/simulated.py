"""
Chain Client - Simulated Backend.

============================================================
PURPOSE
============================================================
In-memory fixed-ratio contract for tests and local dry runs.

FEATURES:
- Native and token ledgers keyed by address
- Pools with per-token vaults and per-side LP mints
- System, pool and swap pause flags
- Contract failures reported in the runtime's "Custom(N)" form
- Configurable latency and error injection

LP tokens are issued 1:1 with the deposited amount and redeem
1:1 for the same side's token.

============================================================
"""

import asyncio
import hashlib
import logging
import random
import secrets
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List, Optional, Tuple

from contract_errors.codes import ContractErrorCode, format_custom_error
from core.constants import BURN_ADDRESS, LAMPORTS_PER_SOL, NETWORK_FEE_LAMPORTS
from core.exceptions import PoolNotFoundError
from pools.models import PoolRatioConfig, PoolState, SwapDirection, TokenSide

from .base import ChainClient
from .exceptions import ChainClientError
from .models import (
    CoreWallet,
    DepositResult,
    SwapResult,
    TransactionResult,
    Wallet,
    WithdrawalResult,
)


logger = logging.getLogger(__name__)

# SPL token program "insufficient funds" custom error.
TOKEN_PROGRAM_INSUFFICIENT_FUNDS = 1


# ============================================================
# SIMULATOR CONFIGURATION
# ============================================================

@dataclass
class SimulatedChainConfig:
    """Configuration for the simulated chain."""

    min_latency_ms: float = 0.0
    """Minimum simulated latency."""

    max_latency_ms: float = 0.0
    """Maximum simulated latency."""

    network_fee_lamports: int = NETWORK_FEE_LAMPORTS
    """Fee charged to the signer of every transaction."""

    random_failure_probability: float = 0.0
    """Probability that a transaction fails with an unparseable RPC error."""

    contract_version: Optional[str] = "0.16.0"
    """Reported deployed contract version (None = unreadable)."""

    core_wallet_initial_lamports: int = 1_000 * LAMPORTS_PER_SOL
    """Native balance airdropped to a newly created core wallet."""


# ============================================================
# SIMULATED CHAIN CLIENT
# ============================================================

class SimulatedChainClient(ChainClient):
    """
    In-memory chain client.

    Every ledger mutation happens after the simulated latency and
    without further awaits, so concurrent workers never interleave
    inside one transaction.
    """

    def __init__(self, config: Optional[SimulatedChainConfig] = None):
        self._config = config or SimulatedChainConfig()

        self._native: Dict[str, int] = {}
        self._tokens: Dict[Tuple[str, str], int] = {}
        self._mint_decimals: Dict[str, int] = {}
        self._pools: Dict[str, PoolState] = {}
        self._vaults: Dict[Tuple[str, str], int] = {}
        self._wallets: Dict[str, Wallet] = {}

        self._system_paused = False
        self._core_wallet: Optional[Wallet] = None
        self._closed = False

        self._signature_counter = 0
        self._injected_errors: List[Tuple[Optional[str], int]] = []
        self.transactions: Deque[Dict[str, Any]] = deque(maxlen=10_000)

    @property
    def name(self) -> str:
        return "simulated"

    # --------------------------------------------------------
    # WALLETS
    # --------------------------------------------------------

    async def generate_wallet(self) -> Wallet:
        await self._simulate_latency()
        wallet = self._make_wallet(secrets.token_bytes(32))
        logger.debug(f"Generated wallet | public_key={wallet.public_key}")
        return wallet

    async def restore_wallet(self, private_key: bytes) -> Wallet:
        await self._simulate_latency()
        if len(private_key) != 32:
            raise ChainClientError(
                f"Invalid private key length: {len(private_key)}",
                method="restore_wallet",
            )
        return self._make_wallet(private_key)

    async def get_or_create_core_wallet(self) -> CoreWallet:
        await self._simulate_latency()
        created = False
        if self._core_wallet is None:
            self._core_wallet = self._make_wallet(secrets.token_bytes(32))
            self._native[self._core_wallet.public_key] = self._config.core_wallet_initial_lamports
            created = True
            logger.info(
                f"Created core wallet | public_key={self._core_wallet.public_key}"
            )
        return CoreWallet(
            wallet=self._core_wallet,
            native_balance=self._native.get(self._core_wallet.public_key, 0),
            created=created,
        )

    # --------------------------------------------------------
    # BALANCES / STATE
    # --------------------------------------------------------

    async def get_native_balance(self, address: str) -> int:
        await self._simulate_latency()
        return self._native.get(address, 0)

    async def get_token_balance(self, address: str, mint: str) -> int:
        await self._simulate_latency()
        return self._tokens.get((address, mint), 0)

    async def get_pool_state(self, pool_id: str) -> PoolState:
        await self._simulate_latency()
        return self._require_pool(pool_id)

    async def is_pool_paused(self, pool_id: str) -> bool:
        await self._simulate_latency()
        return self._require_pool(pool_id).pool_paused

    async def is_system_paused(self) -> bool:
        await self._simulate_latency()
        return self._system_paused

    async def are_pool_swaps_paused(self, pool_id: str) -> bool:
        await self._simulate_latency()
        return self._require_pool(pool_id).swaps_paused

    async def get_contract_version(self) -> Optional[str]:
        await self._simulate_latency()
        return self._config.contract_version

    # --------------------------------------------------------
    # POOL OPERATIONS
    # --------------------------------------------------------

    async def execute_deposit(
        self,
        wallet: Wallet,
        pool_id: str,
        token_mint: str,
        amount: int,
        compute_units: int,
    ) -> DepositResult:
        method = "execute_deposit"
        await self._simulate_latency()
        self._preflight(method, wallet)
        pool = self._pool_for_liquidity(method, pool_id)

        side = self._side_for_mint(pool, token_mint)
        if side is None:
            self._fail(method, ContractErrorCode.INVALID_TOKEN_ACCOUNT)
        if amount <= 0:
            self._fail(method, ContractErrorCode.INVALID_AMOUNT)
        if self._tokens.get((wallet.public_key, token_mint), 0) < amount:
            self._fail(method, ContractErrorCode.INSUFFICIENT_FUNDS)

        lp_mint = pool.lp_mint(side)
        fee = self._charge_fee(wallet)
        self._debit_token(wallet.public_key, token_mint, amount)
        self._vaults[(pool_id, token_mint)] = self._vaults.get((pool_id, token_mint), 0) + amount
        self._credit_token(wallet.public_key, lp_mint, amount)

        signature = self._record(method, wallet, compute_units, amount=amount)
        return DepositResult(
            signature=signature,
            token_amount_in=amount,
            lp_tokens_received=amount,
            network_fee=fee,
        )

    async def execute_withdrawal(
        self,
        wallet: Wallet,
        pool_id: str,
        lp_mint: str,
        lp_amount: int,
        compute_units: int,
    ) -> WithdrawalResult:
        method = "execute_withdrawal"
        await self._simulate_latency()
        self._preflight(method, wallet)
        pool = self._pool_for_liquidity(method, pool_id)

        if lp_mint == pool.lp_mint_a:
            token_mint = pool.token_a_mint
        elif lp_mint == pool.lp_mint_b:
            token_mint = pool.token_b_mint
        else:
            self._fail(method, ContractErrorCode.INVALID_LP_TOKEN_TYPE)
        if lp_amount <= 0:
            self._fail(method, ContractErrorCode.INVALID_AMOUNT)
        if self._tokens.get((wallet.public_key, lp_mint), 0) < lp_amount:
            self._fail(method, ContractErrorCode.INSUFFICIENT_LP_TOKENS)
        if self._vaults.get((pool_id, token_mint), 0) < lp_amount:
            self._fail(method, ContractErrorCode.INSUFFICIENT_LIQUIDITY)

        fee = self._charge_fee(wallet)
        self._debit_token(wallet.public_key, lp_mint, lp_amount)
        self._vaults[(pool_id, token_mint)] -= lp_amount
        self._credit_token(wallet.public_key, token_mint, lp_amount)

        signature = self._record(method, wallet, compute_units, amount=lp_amount)
        return WithdrawalResult(
            signature=signature,
            lp_tokens_in=lp_amount,
            tokens_out=lp_amount,
            network_fee=fee,
        )

    async def execute_swap(
        self,
        wallet: Wallet,
        pool_id: str,
        direction: SwapDirection,
        input_amount: int,
        minimum_output: int,
        compute_units: int,
    ) -> SwapResult:
        method = "execute_swap"
        await self._simulate_latency()
        self._preflight(method, wallet)
        pool = self._pool_for_liquidity(method, pool_id)

        if pool.swaps_paused:
            self._fail(method, ContractErrorCode.POOL_SWAPS_PAUSED)
        if input_amount <= 0:
            self._fail(method, ContractErrorCode.INVALID_INPUT_AMOUNT)

        input_mint = pool.input_mint(direction)
        output_mint = pool.output_mint(direction)
        quote = pool.quote(direction, input_amount)

        if quote.output_amount <= 0:
            self._fail(method, ContractErrorCode.SWAP_AMOUNT_TOO_SMALL)
        if self._tokens.get((wallet.public_key, input_mint), 0) < input_amount:
            self._fail(method, ContractErrorCode.INSUFFICIENT_FUNDS)
        if quote.output_amount < minimum_output:
            self._fail(method, ContractErrorCode.SLIPPAGE_EXCEEDED)
        if self._vaults.get((pool_id, output_mint), 0) < quote.output_amount:
            self._fail(method, ContractErrorCode.INSUFFICIENT_LIQUIDITY)

        fee = self._charge_fee(wallet)
        self._debit_token(wallet.public_key, input_mint, input_amount)
        self._vaults[(pool_id, input_mint)] = self._vaults.get((pool_id, input_mint), 0) + input_amount
        self._vaults[(pool_id, output_mint)] -= quote.output_amount
        self._credit_token(wallet.public_key, output_mint, quote.output_amount)

        signature = self._record(method, wallet, compute_units, amount=input_amount)
        return SwapResult(
            signature=signature,
            direction=direction,
            input_amount=input_amount,
            output_amount=quote.output_amount,
            network_fee=fee,
        )

    # --------------------------------------------------------
    # TOKEN / NATIVE TRANSFERS
    # --------------------------------------------------------

    async def mint_tokens(self, mint: str, destination: str, amount: int) -> str:
        method = "mint_tokens"
        await self._simulate_latency()
        self._raise_injected(method)
        if mint not in self._mint_decimals:
            raise ChainClientError(f"Unknown mint: {mint}", method=method)
        if amount <= 0:
            raise ChainClientError(f"Mint amount must be positive: {amount}", method=method)
        self._credit_token(destination, mint, amount)
        return self._next_signature()

    async def transfer_tokens(
        self,
        wallet: Wallet,
        mint: str,
        destination: str,
        amount: int,
    ) -> str:
        method = "transfer_tokens"
        await self._simulate_latency()
        self._preflight(method, wallet)
        if amount <= 0:
            raise ChainClientError(f"Transfer amount must be positive: {amount}", method=method)
        if self._tokens.get((wallet.public_key, mint), 0) < amount:
            self._fail(method, TOKEN_PROGRAM_INSUFFICIENT_FUNDS)

        self._charge_fee(wallet)
        self._debit_token(wallet.public_key, mint, amount)
        self._credit_token(destination, mint, amount)
        return self._record(method, wallet, 0, amount=amount)

    async def transfer_native(self, wallet: Wallet, destination: str, lamports: int) -> str:
        method = "transfer_native"
        await self._simulate_latency()
        self._preflight(method, wallet)
        if lamports <= 0:
            raise ChainClientError(f"Transfer amount must be positive: {lamports}", method=method)
        fee = self._config.network_fee_lamports
        if self._native.get(wallet.public_key, 0) < lamports + fee:
            raise ChainClientError(
                "Transaction simulation failed: insufficient lamports for transfer",
                method=method,
            )

        self._charge_fee(wallet)
        self._native[wallet.public_key] -= lamports
        self._native[destination] = self._native.get(destination, 0) + lamports
        return self._record(method, wallet, 0, amount=lamports)

    async def submit_transaction(
        self,
        wallet: Wallet,
        transaction: Dict[str, Any],
    ) -> TransactionResult:
        method = "submit_transaction"
        await self._simulate_latency()
        self._preflight(method, wallet)
        fee = self._charge_fee(wallet)
        signature = self._record(method, wallet, int(transaction.get("compute_units", 0)))
        return TransactionResult(signature=signature, success=True, network_fee=fee)

    # --------------------------------------------------------
    # LIFECYCLE
    # --------------------------------------------------------

    async def is_healthy(self) -> bool:
        return not self._closed

    async def close(self) -> None:
        self._closed = True
        logger.info("SimulatedChainClient closed")

    # --------------------------------------------------------
    # TEST / SETUP HELPERS
    # --------------------------------------------------------

    def create_pool(
        self,
        ratio: PoolRatioConfig,
        token_a_decimals: int,
        token_b_decimals: int,
        initial_liquidity_a: int = 0,
        initial_liquidity_b: int = 0,
    ) -> PoolState:
        """Create a pool for a canonical ratio config."""
        if ratio.pool_id in self._pools:
            self._fail("create_pool", ContractErrorCode.POOL_ALREADY_EXISTS)

        short_id = ratio.pool_id[:16]
        pool = PoolState(
            pool_id=ratio.pool_id,
            token_a_mint=ratio.token_a_mint,
            token_b_mint=ratio.token_b_mint,
            token_a_decimals=token_a_decimals,
            token_b_decimals=token_b_decimals,
            ratio_a_numerator=ratio.ratio_a_numerator,
            ratio_b_denominator=ratio.ratio_b_denominator,
            lp_mint_a=f"lp_a_{short_id}",
            lp_mint_b=f"lp_b_{short_id}",
        )
        self._pools[pool.pool_id] = pool
        self._mint_decimals.setdefault(pool.token_a_mint, token_a_decimals)
        self._mint_decimals.setdefault(pool.token_b_mint, token_b_decimals)
        self._mint_decimals[pool.lp_mint_a] = token_a_decimals
        self._mint_decimals[pool.lp_mint_b] = token_b_decimals
        self._vaults[(pool.pool_id, pool.token_a_mint)] = initial_liquidity_a
        self._vaults[(pool.pool_id, pool.token_b_mint)] = initial_liquidity_b

        logger.info(
            f"Created pool | pool_id={pool.pool_id} | "
            f"ratio={ratio.ratio_display} | lp_a={pool.lp_mint_a} | lp_b={pool.lp_mint_b}"
        )
        return pool

    def remove_pool(self, pool_id: str) -> None:
        self._pools.pop(pool_id, None)

    def set_system_paused(self, paused: bool) -> None:
        self._system_paused = paused

    def set_pool_paused(self, pool_id: str, paused: bool) -> None:
        self._require_pool(pool_id).pool_paused = paused

    def set_swaps_paused(self, pool_id: str, paused: bool) -> None:
        self._require_pool(pool_id).swaps_paused = paused

    def airdrop(self, address: str, lamports: int) -> None:
        self._native[address] = self._native.get(address, 0) + lamports

    def set_token_balance(self, address: str, mint: str, amount: int) -> None:
        self._tokens[(address, mint)] = amount

    def vault_balance(self, pool_id: str, mint: str) -> int:
        return self._vaults.get((pool_id, mint), 0)

    def burned_amount(self, mint: str, burn_address: str = BURN_ADDRESS) -> int:
        return self._tokens.get((burn_address, mint), 0)

    def inject_error(self, code: int, method: Optional[str] = None) -> None:
        """Fail the next call (of `method`, or any call) with a contract error."""
        self._injected_errors.append((method, code))

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    async def _simulate_latency(self) -> None:
        latency_ms = random.uniform(self._config.min_latency_ms, self._config.max_latency_ms)
        await asyncio.sleep(latency_ms / 1000)

    def _make_wallet(self, private_key: bytes) -> Wallet:
        public_key = hashlib.sha256(private_key).hexdigest()
        wallet = Wallet(public_key=public_key, private_key=private_key)
        self._wallets[public_key] = wallet
        return wallet

    def _require_pool(self, pool_id: str) -> PoolState:
        pool = self._pools.get(pool_id)
        if pool is None:
            raise PoolNotFoundError(pool_id)
        return pool

    def _pool_for_liquidity(self, method: str, pool_id: str) -> PoolState:
        pool = self._pools.get(pool_id)
        if pool is None:
            self._fail(method, ContractErrorCode.POOL_NOT_FOUND)
        if self._system_paused:
            self._fail(method, ContractErrorCode.SYSTEM_PAUSED)
        if pool.pool_paused:
            self._fail(method, ContractErrorCode.POOL_PAUSED)
        return pool

    @staticmethod
    def _side_for_mint(pool: PoolState, mint: str) -> Optional[TokenSide]:
        if mint == pool.token_a_mint:
            return TokenSide.A
        if mint == pool.token_b_mint:
            return TokenSide.B
        return None

    def _preflight(self, method: str, wallet: Wallet) -> None:
        """Injected errors, random failures and the fee-payer check."""
        self._raise_injected(method)
        if (
            self._config.random_failure_probability > 0
            and random.random() < self._config.random_failure_probability
        ):
            raise ChainClientError(
                "Transaction simulation failed: Blockhash not found",
                method=method,
            )
        if self._native.get(wallet.public_key, 0) < self._config.network_fee_lamports:
            raise ChainClientError(
                "Transaction simulation failed: Attempt to debit an account but found "
                "no record of a prior credit.",
                method=method,
            )

    def _raise_injected(self, method: str) -> None:
        for index, (target, code) in enumerate(self._injected_errors):
            if target is None or target == method:
                del self._injected_errors[index]
                self._fail(method, code)

    def _fail(self, method: str, code: int) -> None:
        raise ChainClientError(
            f"Transaction simulation failed: Error processing Instruction 0: "
            f"{format_custom_error(code)}",
            method=method,
            code=int(code),
        )

    def _charge_fee(self, wallet: Wallet) -> int:
        fee = self._config.network_fee_lamports
        self._native[wallet.public_key] = self._native.get(wallet.public_key, 0) - fee
        return fee

    def _credit_token(self, address: str, mint: str, amount: int) -> None:
        self._tokens[(address, mint)] = self._tokens.get((address, mint), 0) + amount

    def _debit_token(self, address: str, mint: str, amount: int) -> None:
        self._tokens[(address, mint)] = self._tokens.get((address, mint), 0) - amount

    def _next_signature(self) -> str:
        self._signature_counter += 1
        return f"sim{self._signature_counter:08d}{secrets.token_hex(16)}"

    def _record(self, method: str, wallet: Wallet, compute_units: int, amount: int = 0) -> str:
        signature = self._next_signature()
        self.transactions.append({
            "signature": signature,
            "method": method,
            "signer": wallet.public_key,
            "compute_units": compute_units,
            "amount": amount,
        })
        return signature


__all__ = ["SimulatedChainConfig", "SimulatedChainClient"]
