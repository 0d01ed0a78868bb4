"""
Contract Errors - Recovery Engine.

============================================================
RESPONSIBILITY
============================================================
Executes the recovery policy for a classified failure and
returns a verdict for the worker loop.

CRITICAL CONSTRAINTS:
- Never raises for an expected failure kind
- Every wait and every poll races the worker's cancellation handle
- Every poll loop has a hard iteration cap

============================================================
POLICY TABLE
============================================================
INSUFFICIENT_FUNDS      refill below threshold, wait, retry
POOL_PAUSED             poll pool flag, retry when clear
SYSTEM_PAUSED           poll system flag, retry when clear
INSUFFICIENT_LIQUIDITY  withdrawal/swap: wait, retry. deposit: record
SLIPPAGE_EXCEEDED       widen tolerance (capped), wait, retry
INVALID_TOKEN_ACCOUNT   record, no retry
INVALID_LP_TOKEN_TYPE   record, no retry
POOL_SWAPS_PAUSED       non-swap: retry. swap: poll, retry when clear
UNKNOWN                 bounded retries with fixed delay, then record

============================================================
"""

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional

from core.config import RecoveryConfig
from core.exceptions import ConfigurationError
from core.types import WorkerKind

from .models import ErrorClassification, ErrorKind, RecoveryDecision, RecoveryVerdict

if TYPE_CHECKING:
    from chain_client.base import ChainClient
    from workers.cancellation import CancellationHandle
    from workers.models import WorkerContext


logger = logging.getLogger(__name__)


class RecoveryEngine:
    """
    Recovery policies for contract errors.

    One instance is shared by every worker loop; all per-worker
    state lives in the WorkerContext passed in.
    """

    def __init__(
        self,
        chain_client: "ChainClient",
        config: Optional[RecoveryConfig] = None,
    ) -> None:
        self._client = chain_client
        self._config = config or RecoveryConfig()
        errors = self._config.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid recovery config: {'; '.join(errors)}",
                config_key="recovery",
            )

    @property
    def config(self) -> RecoveryConfig:
        return self._config

    async def recover(
        self,
        classification: ErrorClassification,
        context: "WorkerContext",
        cancel: "CancellationHandle",
    ) -> RecoveryDecision:
        """Run the policy for one classified failure."""
        if cancel.is_cancelled:
            return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")

        logger.warning(
            f"Contract error | worker_id={context.worker_id} | "
            f"kind={classification.kind.value} | code={classification.code} | "
            f"message={classification.message}"
        )

        kind = classification.kind
        if kind == ErrorKind.INSUFFICIENT_FUNDS:
            return await self._insufficient_funds(context, cancel)
        if kind == ErrorKind.POOL_PAUSED:
            return await self._poll_until_clear(
                lambda: self._client.is_pool_paused(context.pool_id),
                self._config.pool_pause_max_polls,
                "pool pause",
                context,
                cancel,
            )
        if kind == ErrorKind.SYSTEM_PAUSED:
            return await self._poll_until_clear(
                self._client.is_system_paused,
                self._config.system_pause_max_polls,
                "system pause",
                context,
                cancel,
            )
        if kind == ErrorKind.INSUFFICIENT_LIQUIDITY:
            return await self._insufficient_liquidity(context, cancel)
        if kind == ErrorKind.SLIPPAGE_EXCEEDED:
            return await self._slippage_exceeded(context, cancel)
        if kind == ErrorKind.INVALID_TOKEN_ACCOUNT:
            logger.error(f"Invalid token account | worker_id={context.worker_id}")
            return RecoveryDecision(
                RecoveryVerdict.RECORD_AND_CONTINUE,
                "Invalid token account - check pool configuration",
            )
        if kind == ErrorKind.INVALID_LP_TOKEN_TYPE:
            logger.error(f"Invalid LP token type | worker_id={context.worker_id}")
            return RecoveryDecision(
                RecoveryVerdict.RECORD_AND_CONTINUE,
                "LP token type mismatch - check token configuration",
            )
        if kind == ErrorKind.POOL_SWAPS_PAUSED:
            if context.kind != WorkerKind.SWAP:
                return RecoveryDecision(RecoveryVerdict.RETRY)
            return await self._poll_until_clear(
                lambda: self._client.are_pool_swaps_paused(context.pool_id),
                self._config.swaps_pause_max_polls,
                "pool swaps pause",
                context,
                cancel,
            )
        return await self._unknown(classification, context, cancel)

    # --------------------------------------------------------
    # POLICIES
    # --------------------------------------------------------

    async def _insufficient_funds(
        self,
        context: "WorkerContext",
        cancel: "CancellationHandle",
    ) -> RecoveryDecision:
        try:
            if context.auto_refill and context.initial_amount > 0:
                pool = await self._client.get_pool_state(context.pool_id)
                holding = await self._client.get_token_balance(
                    context.wallet_address, context.refill_mint(pool)
                )
                threshold = int(context.initial_amount * self._config.auto_refill_threshold)
                if holding < threshold:
                    logger.info(
                        f"Refilling worker | worker_id={context.worker_id} | "
                        f"holding={holding} | threshold={threshold} | "
                        f"amount={context.initial_amount}"
                    )
                    await self._client.mint_tokens(
                        context.refill_mint(pool),
                        context.wallet_address,
                        context.initial_amount,
                    )
        except Exception as e:
            logger.error(f"Refill failed | worker_id={context.worker_id} | error={e}")
            return RecoveryDecision(RecoveryVerdict.RECORD_AND_CONTINUE, f"Refill failed: {e}")

        if await cancel.sleep(self._config.insufficient_funds_delay_seconds):
            return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")
        return RecoveryDecision(RecoveryVerdict.RETRY)

    async def _insufficient_liquidity(
        self,
        context: "WorkerContext",
        cancel: "CancellationHandle",
    ) -> RecoveryDecision:
        if context.kind in (WorkerKind.WITHDRAWAL, WorkerKind.SWAP):
            if await cancel.sleep(self._config.insufficient_liquidity_delay_seconds):
                return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")
            return RecoveryDecision(RecoveryVerdict.RETRY)

        logger.error(
            f"Unexpected insufficient liquidity for deposit worker | "
            f"worker_id={context.worker_id}"
        )
        return RecoveryDecision(
            RecoveryVerdict.RECORD_AND_CONTINUE,
            "Unexpected insufficient liquidity on deposit",
        )

    async def _slippage_exceeded(
        self,
        context: "WorkerContext",
        cancel: "CancellationHandle",
    ) -> RecoveryDecision:
        context.slippage_tolerance = min(
            context.slippage_tolerance * self._config.slippage_multiplier,
            self._config.max_slippage_tolerance,
        )
        logger.info(
            f"Slippage tolerance widened | worker_id={context.worker_id} | "
            f"tolerance={context.slippage_tolerance:.2%}"
        )
        if await cancel.sleep(self._config.slippage_delay_seconds):
            return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")
        return RecoveryDecision(RecoveryVerdict.RETRY)

    async def _unknown(
        self,
        classification: ErrorClassification,
        context: "WorkerContext",
        cancel: "CancellationHandle",
    ) -> RecoveryDecision:
        if context.retry_count < self._config.unknown_max_retries:
            context.retry_count += 1
            logger.info(
                f"Retrying after unknown error | worker_id={context.worker_id} | "
                f"attempt={context.retry_count}/{self._config.unknown_max_retries}"
            )
            if await cancel.sleep(self._config.unknown_retry_delay_seconds):
                return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")
            return RecoveryDecision(RecoveryVerdict.RETRY)

        label = (
            f"Unknown contract error: {classification.code}"
            if classification.code is not None
            else f"Unknown error: {classification.message}"
        )
        return RecoveryDecision(RecoveryVerdict.RECORD_AND_CONTINUE, label)

    async def _poll_until_clear(
        self,
        is_set: Callable[[], Awaitable[bool]],
        max_polls: int,
        label: str,
        context: "WorkerContext",
        cancel: "CancellationHandle",
    ) -> RecoveryDecision:
        """Poll a pause flag until it clears, the cap is hit, or cancellation."""
        polls = 0
        while True:
            if cancel.is_cancelled:
                return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")
            try:
                still_set = await is_set()
            except Exception as e:
                logger.error(
                    f"Pause flag query failed | worker_id={context.worker_id} | "
                    f"flag={label} | error={e}"
                )
                return RecoveryDecision(
                    RecoveryVerdict.RECORD_AND_CONTINUE,
                    f"Could not read {label} flag: {e}",
                )
            if not still_set:
                if polls:
                    logger.info(
                        f"Pause cleared, resuming | worker_id={context.worker_id} | "
                        f"flag={label} | polls={polls}"
                    )
                return RecoveryDecision(RecoveryVerdict.RETRY)

            if polls >= max_polls:
                logger.error(
                    f"Pause wait timed out | worker_id={context.worker_id} | "
                    f"flag={label} | polls={polls}"
                )
                return RecoveryDecision(
                    RecoveryVerdict.RECORD_AND_CONTINUE,
                    f"Timed out waiting for {label} to clear after {polls} polls",
                )

            if await cancel.sleep(self._config.poll_interval_seconds):
                return RecoveryDecision(RecoveryVerdict.CANCELLED, "cancelled")
            polls += 1

            if polls % self._config.poll_log_every == 0:
                logger.info(
                    f"Still waiting | worker_id={context.worker_id} | flag={label} | "
                    f"waited_seconds={polls * self._config.poll_interval_seconds:.0f}"
                )


__all__ = ["RecoveryEngine"]
