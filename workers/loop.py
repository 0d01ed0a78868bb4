"""
Workers - Worker Loop.

============================================================
RESPONSIBILITY
============================================================
Long-lived operation loop of one worker.

Each iteration:
1. Honor the shared system-paused flag (cancellable wait)
2. Build the operation (amount, minimum output, compute units)
3. Invoke the chain client
4. Success: update statistics, share output, auto-refill
5. Failure: record, classify, run the recovery policy
6. Wait a jittered delay

============================================================
CRITICAL CONSTRAINTS
============================================================
- Operations of one worker are strictly sequential
- An operation failure never ends the loop
- Only the cancellation handle ends the loop
- The loop writes statistics, never the worker status

============================================================
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from chain_client.base import ChainClient
from chain_client.models import Wallet
from compute_budget.budgeter import OP_DEPOSIT, ResourceBudgeter
from contract_errors.classifier import classify
from contract_errors.models import RecoveryVerdict
from contract_errors.recovery import RecoveryEngine
from core.config import WorkerPoolConfig
from core.system_state import SystemState
from core.types import WorkerKind
from pools.models import PoolState

from .cancellation import CancellationHandle
from .models import WorkerConfig, WorkerContext, WorkerError, WorkerStatistics

if TYPE_CHECKING:
    from storage.base import StateStore


logger = logging.getLogger(__name__)

PeerResolver = Callable[[WorkerConfig], Awaitable[Optional[str]]]


@dataclass
class OperationOutcome:
    """Result of one successful pool operation."""

    operation: str
    signature: str
    volume: int
    fee: int
    output_mint: str
    output_amount: int


# ============================================================
# POSITION SEEDING
# ============================================================

async def seed_position(
    client: ChainClient,
    wallet: Wallet,
    config: WorkerConfig,
    pool: PoolState,
    budgeter: ResourceBudgeter,
    force: bool = False,
) -> int:
    """
    Give a worker its initial token position.

    Mints `initial_amount` of the underlying token when the holding
    is zero (or always, with force). Withdrawal workers then deposit
    the minted amount once to obtain LP tokens.

    Returns:
        Amount minted (0 when nothing was needed)
    """
    if config.initial_amount <= 0:
        return 0

    context = WorkerContext.from_config(config)
    holding = await client.get_token_balance(wallet.public_key, context.holding_mint(pool))
    if holding > 0 and not force:
        return 0

    mint = context.refill_mint(pool)
    await client.mint_tokens(mint, wallet.public_key, config.initial_amount)

    if config.kind == WorkerKind.WITHDRAWAL:
        await client.execute_deposit(
            wallet,
            pool.pool_id,
            mint,
            config.initial_amount,
            budgeter.get_budget(OP_DEPOSIT),
        )

    logger.info(
        f"Seeded worker position | worker_id={config.worker_id} | "
        f"mint={mint} | amount={config.initial_amount}"
    )
    return config.initial_amount


# ============================================================
# WORKER LOOP
# ============================================================

class WorkerLoop:
    """
    Operation loop for one worker.

    Owned by the WorkerPool, which creates one per start and runs
    it as an independent asyncio task.
    """

    def __init__(
        self,
        config: WorkerConfig,
        wallet: Wallet,
        cancel: CancellationHandle,
        client: ChainClient,
        store: "StateStore",
        recovery: RecoveryEngine,
        budgeter: ResourceBudgeter,
        system_state: SystemState,
        statistics: WorkerStatistics,
        pool_config: Optional[WorkerPoolConfig] = None,
        peer_resolver: Optional[PeerResolver] = None,
    ) -> None:
        self._config = config
        self._wallet = wallet
        self._cancel = cancel
        self._client = client
        self._store = store
        self._recovery = recovery
        self._budgeter = budgeter
        self._system_state = system_state
        self._statistics = statistics
        self._pool_config = pool_config or WorkerPoolConfig()
        self._peer_resolver = peer_resolver
        self._logger = logger

    @property
    def worker_id(self) -> str:
        return self._config.worker_id

    @property
    def statistics(self) -> WorkerStatistics:
        """Snapshot of the live counters."""
        return self._statistics.copy()

    # --------------------------------------------------------
    # MAIN LOOP
    # --------------------------------------------------------

    async def run(self) -> None:
        """Run until the cancellation handle is signalled."""
        self._logger.info(
            f"Worker loop started | worker_id={self.worker_id} | "
            f"kind={self._config.kind.value} | pool_id={self._config.pool_id}"
        )

        while not self._cancel.is_cancelled:
            try:
                if self._system_state.is_paused:
                    if await self._cancel.sleep(self._pool_config.paused_poll_seconds):
                        break
                    continue

                await self.run_iteration()

                if await self._cancel.sleep(self._next_delay()):
                    break

            except asyncio.CancelledError:
                self._logger.info(f"Worker loop task cancelled | worker_id={self.worker_id}")
                raise
            except Exception as e:
                self._logger.error(
                    f"Unexpected worker loop error | worker_id={self.worker_id} | error={e}",
                    exc_info=True,
                )
                await self._record_failure(WorkerError(
                    message=f"Unexpected error: {e}",
                    operation=self._config.operation_name,
                ))
                if await self._cancel.sleep(self._pool_config.error_backoff_seconds):
                    break

        self._logger.info(
            f"Worker loop stopped | worker_id={self.worker_id} | "
            f"successful={self._statistics.successful_operations} | "
            f"failed={self._statistics.failed_operations}"
        )

    async def run_iteration(self) -> Optional[OperationOutcome]:
        """
        Run one operation with recovery.

        The context is rebuilt for every iteration, so a widened
        slippage tolerance or a retry count never carries over.

        Returns:
            The successful outcome, or None when the iteration ended
            in a recorded failure or cancellation
        """
        context = WorkerContext.from_config(
            self._config,
            slippage_tolerance=self._pool_config.initial_slippage_tolerance,
        )
        max_attempts = self._pool_config.max_attempts_per_operation

        for attempt in range(1, max_attempts + 1):
            if self._cancel.is_cancelled:
                return None

            try:
                pool = await self._client.get_pool_state(self._config.pool_id)
                outcome = await self._execute(context, pool)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                classification = classify(e)
                await self._record_failure(WorkerError(
                    message=classification.message,
                    operation=context.last_operation,
                    code=classification.code,
                ))
                decision = await self._recovery.recover(classification, context, self._cancel)
                if decision.verdict == RecoveryVerdict.RETRY:
                    continue
                if decision.verdict == RecoveryVerdict.RECORD_AND_CONTINUE and decision.reason:
                    self._logger.warning(
                        f"Operation abandoned | worker_id={self.worker_id} | "
                        f"attempt={attempt} | reason={decision.reason}"
                    )
                return None

            await self._on_success(outcome, pool)
            return outcome

        self._logger.warning(
            f"Attempt cap reached | worker_id={self.worker_id} | "
            f"attempts={max_attempts} | operation={context.last_operation}"
        )
        return None

    # --------------------------------------------------------
    # OPERATIONS
    # --------------------------------------------------------

    async def _execute(self, context: WorkerContext, pool: PoolState) -> OperationOutcome:
        kind = self._config.kind
        units = self._budgeter.get_budget(self._config.operation_name)
        holding = await self._client.get_token_balance(
            self._wallet.public_key, context.holding_mint(pool)
        )

        if kind == WorkerKind.DEPOSIT:
            mint = pool.token_mint(self._config.token_side)
            amount = self._pick_amount(holding, self._pool_config.deposit_max_fraction)
            result = await self._client.execute_deposit(
                self._wallet, pool.pool_id, mint, amount, units
            )
            return OperationOutcome(
                operation=self._config.operation_name,
                signature=result.signature,
                volume=result.token_amount_in,
                fee=result.network_fee,
                output_mint=pool.lp_mint(self._config.token_side),
                output_amount=result.lp_tokens_received,
            )

        if kind == WorkerKind.WITHDRAWAL:
            lp_mint = pool.lp_mint(self._config.token_side)
            amount = self._pick_amount(holding, self._pool_config.withdrawal_max_fraction)
            result = await self._client.execute_withdrawal(
                self._wallet, pool.pool_id, lp_mint, amount, units
            )
            return OperationOutcome(
                operation=self._config.operation_name,
                signature=result.signature,
                volume=result.lp_tokens_in,
                fee=result.network_fee,
                output_mint=pool.token_mint(self._config.token_side),
                output_amount=result.tokens_out,
            )

        direction = self._config.swap_direction
        amount = self._pick_amount(holding, self._pool_config.swap_max_fraction)
        quote = pool.quote(direction, amount)
        minimum_output = quote.minimum_output(context.slippage_tolerance)
        result = await self._client.execute_swap(
            self._wallet, pool.pool_id, direction, amount, minimum_output, units
        )
        return OperationOutcome(
            operation=self._config.operation_name,
            signature=result.signature,
            volume=result.input_amount,
            fee=result.network_fee,
            output_mint=pool.output_mint(direction),
            output_amount=result.output_amount,
        )

    def _pick_amount(self, holding: int, max_fraction: float) -> int:
        """
        Random amount between the minimum and a fraction of the holding.

        A holding below the minimum still yields the minimum, so the
        chain reports insufficient funds and the refill policy runs.
        """
        low = self._pool_config.min_operation_amount
        high = int(holding * max_fraction)
        if high <= low:
            return low
        return random.randint(low, high)

    def _next_delay(self) -> float:
        return random.uniform(
            self._pool_config.min_delay_ms, self._pool_config.max_delay_ms
        ) / 1000

    # --------------------------------------------------------
    # SUCCESS PATH
    # --------------------------------------------------------

    async def _on_success(self, outcome: OperationOutcome, pool: PoolState) -> None:
        self._statistics.record_success(outcome.volume, outcome.fee)
        await self._store.save_worker_statistics(self.worker_id, self._statistics)

        self._logger.debug(
            f"Operation succeeded | worker_id={self.worker_id} | "
            f"operation={outcome.operation} | volume={outcome.volume} | "
            f"output={outcome.output_amount} | signature={outcome.signature}"
        )

        if self._config.share_output and outcome.output_amount > 0:
            await self._share_output(outcome)

        if self._config.auto_refill:
            await self._maybe_refill(pool)

    async def _share_output(self, outcome: OperationOutcome) -> None:
        """Hand the operation output to a peer worker on the same pool."""
        if self._peer_resolver is None:
            return
        try:
            peer_address = await self._peer_resolver(self._config)
            if peer_address is None:
                return
            await self._client.transfer_tokens(
                self._wallet, outcome.output_mint, peer_address, outcome.output_amount
            )
            self._logger.debug(
                f"Shared output | worker_id={self.worker_id} | "
                f"peer={peer_address} | amount={outcome.output_amount}"
            )
        except Exception as e:
            self._logger.warning(f"Output sharing failed | worker_id={self.worker_id} | error={e}")

    async def _maybe_refill(self, pool: PoolState) -> None:
        if self._config.initial_amount <= 0:
            return
        context = WorkerContext.from_config(self._config)
        try:
            holding = await self._client.get_token_balance(
                self._wallet.public_key, context.holding_mint(pool)
            )
            threshold = int(
                self._config.initial_amount * self._recovery.config.auto_refill_threshold
            )
            if holding < threshold:
                await seed_position(
                    self._client, self._wallet, self._config, pool, self._budgeter, force=True
                )
        except Exception as e:
            self._logger.warning(f"Auto-refill failed | worker_id={self.worker_id} | error={e}")

    # --------------------------------------------------------
    # FAILURE PATH
    # --------------------------------------------------------

    async def _record_failure(self, error: WorkerError) -> None:
        self._statistics.record_failure(error, max_recent=self._pool_config.max_recent_errors)
        try:
            await self._store.save_worker_statistics(self.worker_id, self._statistics)
            await self._store.add_worker_error(self.worker_id, error)
        except Exception as e:
            self._logger.error(f"Failed to persist worker error | worker_id={self.worker_id} | error={e}")


__all__ = ["WorkerLoop", "OperationOutcome", "seed_position"]
