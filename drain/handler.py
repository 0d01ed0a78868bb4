"""
Drain - Drain Handler.

============================================================
RESPONSIBILITY
============================================================
Empties a worker's holdings with a burn-first protocol.

1. Read the holding (deposit: token, withdrawal: LP token,
   swap: input token). Zero holding -> nothing to drain.
2. BURN the full holding to the burn address. Recorded at once.
3. Run the worker's terminal operation with the burned amount,
   exercising the contract path. On success burn the output.
4. A terminal failure never rolls back the burn.
5. Sweep the native balance (minus a fee reserve) back to the
   operational wallet. Sweep failures never change the outcome.

============================================================
"""

import logging
from typing import Optional

from chain_client.base import ChainClient
from chain_client.models import Wallet
from compute_budget.budgeter import OP_DEPOSIT, OP_SWAP, OP_WITHDRAW, ResourceBudgeter
from core.config import DrainConfig
from core.types import WorkerKind, WorkerStatus
from pools.models import PoolState
from workers.models import WorkerConfig
from workers.pool import WorkerPool

from .models import DrainResult


logger = logging.getLogger(__name__)


class DrainHandler:
    """Burn-first drain of a single worker."""

    def __init__(
        self,
        chain_client: ChainClient,
        worker_pool: WorkerPool,
        budgeter: Optional[ResourceBudgeter] = None,
        config: Optional[DrainConfig] = None,
    ) -> None:
        self._client = chain_client
        self._pool = worker_pool
        self._budgeter = budgeter or ResourceBudgeter()
        self._config = config or DrainConfig()
        self._logger = logger

    async def drain(self, worker_id: str) -> DrainResult:
        """
        Drain one worker. A running worker is stopped first.

        Raises:
            WorkerNotFoundError: Unknown worker id
        """
        config = await self._pool.get_config(worker_id)
        if config.status == WorkerStatus.RUNNING or self._pool.is_running(worker_id):
            self._logger.info(f"Stopping worker before drain | worker_id={worker_id}")
            await self._pool.stop(worker_id)

        result = DrainResult(
            worker_id=worker_id,
            worker_kind=config.kind.value,
            operation=f"{config.kind.value}_drain",
        )

        wallet = await self._pool.get_wallet(worker_id)
        try:
            pool = await self._client.get_pool_state(config.pool_id)
            if config.kind == WorkerKind.DEPOSIT:
                await self._drain_deposit(config, wallet, pool, result)
            elif config.kind == WorkerKind.WITHDRAWAL:
                await self._drain_withdrawal(config, wallet, pool, result)
            else:
                await self._drain_swap(config, wallet, pool, result)
        except Exception as e:
            result.operation_successful = False
            result.error_message = str(e)
            self._logger.error(f"Drain aborted | worker_id={worker_id} | error={e}")

        if not result.nothing_to_drain:
            await self._sweep_native(wallet, result)

        self._logger.info(
            f"Drain finished | worker_id={worker_id} | "
            f"nothing_to_drain={result.nothing_to_drain} | "
            f"operation_successful={result.operation_successful} | "
            f"tokens_burned={result.tokens_burned} | lp_tokens_burned={result.lp_tokens_burned}"
        )
        return result

    # --------------------------------------------------------
    # PER-KIND PROTOCOLS
    # --------------------------------------------------------

    async def _drain_deposit(
        self,
        config: WorkerConfig,
        wallet: Wallet,
        pool: PoolState,
        result: DrainResult,
    ) -> None:
        mint = pool.token_mint(config.token_side)
        holding = await self._client.get_token_balance(wallet.public_key, mint)
        result.tokens_used = holding
        if holding == 0:
            self._nothing_to_drain(config, result)
            return

        await self._burn(wallet, mint, holding)
        result.tokens_burned = holding

        try:
            deposit = await self._client.execute_deposit(
                wallet, pool.pool_id, mint, holding, self._budgeter.get_budget(OP_DEPOSIT)
            )
        except Exception as e:
            self._terminal_failed(config, result, "Deposit", e)
            return

        result.operation_successful = True
        result.transaction_signature = deposit.signature
        result.network_fee_paid = deposit.network_fee
        result.lp_tokens_received = deposit.lp_tokens_received

        if await self._burn_output(wallet, pool.lp_mint(config.token_side), deposit.lp_tokens_received, result):
            result.lp_tokens_burned = deposit.lp_tokens_received

    async def _drain_withdrawal(
        self,
        config: WorkerConfig,
        wallet: Wallet,
        pool: PoolState,
        result: DrainResult,
    ) -> None:
        lp_mint = pool.lp_mint(config.token_side)
        holding = await self._client.get_token_balance(wallet.public_key, lp_mint)
        result.lp_tokens_used = holding
        if holding == 0:
            self._nothing_to_drain(config, result)
            return

        await self._burn(wallet, lp_mint, holding)
        result.lp_tokens_burned = holding

        try:
            withdrawal = await self._client.execute_withdrawal(
                wallet, pool.pool_id, lp_mint, holding, self._budgeter.get_budget(OP_WITHDRAW)
            )
        except Exception as e:
            self._terminal_failed(config, result, "Withdrawal", e)
            return

        result.operation_successful = True
        result.transaction_signature = withdrawal.signature
        result.network_fee_paid = withdrawal.network_fee
        result.tokens_withdrawn = withdrawal.tokens_out

        if await self._burn_output(wallet, pool.token_mint(config.token_side), withdrawal.tokens_out, result):
            result.tokens_burned = withdrawal.tokens_out

    async def _drain_swap(
        self,
        config: WorkerConfig,
        wallet: Wallet,
        pool: PoolState,
        result: DrainResult,
    ) -> None:
        direction = config.swap_direction
        result.swap_direction = direction.value
        input_mint = pool.input_mint(direction)
        holding = await self._client.get_token_balance(wallet.public_key, input_mint)
        result.tokens_swapped_in = holding
        if holding == 0:
            self._nothing_to_drain(config, result)
            return

        await self._burn(wallet, input_mint, holding)
        result.tokens_burned = holding

        try:
            quote = pool.quote(direction, holding)
            minimum_output = int(quote.output_amount * self._config.swap_min_output_fraction)
            swap = await self._client.execute_swap(
                wallet,
                pool.pool_id,
                direction,
                holding,
                minimum_output,
                self._budgeter.get_budget(OP_SWAP),
            )
        except Exception as e:
            self._terminal_failed(config, result, "Swap", e)
            return

        result.operation_successful = True
        result.transaction_signature = swap.signature
        result.network_fee_paid = swap.network_fee
        result.tokens_swapped_out = swap.output_amount

        # Total burned is input plus output
        if await self._burn_output(wallet, pool.output_mint(direction), swap.output_amount, result):
            result.tokens_burned += swap.output_amount

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    async def _burn(self, wallet: Wallet, mint: str, amount: int) -> None:
        """Burn to the configured address. Raises on failure."""
        self._logger.debug(f"Burning | mint={mint} | amount={amount}")
        await self._client.burn_tokens(wallet, mint, amount, destination=self._config.burn_address)

    async def _burn_output(self, wallet: Wallet, mint: str, amount: int, result: DrainResult) -> bool:
        if amount <= 0:
            return False
        try:
            await self._burn(wallet, mint, amount)
            return True
        except Exception as e:
            result.error_message = f"Output burn failed: {e}"
            self._logger.error(
                f"Output burn failed | worker_id={result.worker_id} | mint={mint} | error={e}"
            )
            return False

    def _nothing_to_drain(self, config: WorkerConfig, result: DrainResult) -> None:
        result.nothing_to_drain = True
        self._logger.info(f"Nothing to drain | worker_id={config.worker_id}")

    def _terminal_failed(
        self,
        config: WorkerConfig,
        result: DrainResult,
        label: str,
        error: Exception,
    ) -> None:
        result.operation_successful = False
        result.error_message = f"{label} failed: {error}"
        self._logger.warning(
            f"{label} failed during drain, holding already burned | "
            f"worker_id={config.worker_id} | error={error}"
        )

    async def _sweep_native(self, wallet: Wallet, result: DrainResult) -> None:
        try:
            balance = await self._client.get_native_balance(wallet.public_key)
            amount = balance - self._config.fee_reserve_lamports
            if amount <= 0:
                return
            core_wallet = await self._client.get_or_create_core_wallet()
            await self._client.transfer_native(wallet, core_wallet.public_key, amount)
            result.native_swept = amount
            self._logger.info(f"Swept native balance | worker_id={result.worker_id} | lamports={amount}")
        except Exception as e:
            result.sweep_error = str(e)
            self._logger.warning(f"Native sweep failed | worker_id={result.worker_id} | error={e}")


__all__ = ["DrainHandler"]
