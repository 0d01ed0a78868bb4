"""
Compute Budget - Resource Budgeter.

============================================================
RESPONSIBILITY
============================================================
Maps a contract operation to the compute units requested for it.

- Static table for fixed-cost operations
- Dynamic formulas for fee consolidation and donations
- Never fails closed: unknown operations get the default budget

============================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from core.constants import LAMPORTS_PER_SOL


logger = logging.getLogger(__name__)


# ============================================================
# OPERATION NAMES
# ============================================================

OP_DEPOSIT = "process_liquidity_deposit"
OP_WITHDRAW = "process_liquidity_withdraw"
OP_SWAP = "process_swap_execute"
OP_POOL_INITIALIZE = "process_pool_initialize"
OP_CONSOLIDATE = "process_consolidate_pool_fees"
OP_DONATE = "process_treasury_donate_sol"

DEFAULT_COMPUTE_UNITS = 150_000

# Observed minimums: deposit 249K, withdraw 227K, swap 202K, init 91K.
STATIC_COMPUTE_UNITS: Dict[str, int] = {
    OP_DEPOSIT: 310_000,
    OP_WITHDRAW: 290_000,
    OP_SWAP: 250_000,
    OP_POOL_INITIALIZE: 150_000,
    OP_CONSOLIDATE: 150_000,
    OP_DONATE: 150_000,
    "process_system_pause": 150_000,
    "process_system_unpause": 150_000,
    "process_treasury_withdraw_fees": 150_000,
    "process_treasury_get_info": 150_000,
    "process_pool_pause": 150_000,
    "process_pool_unpause": 150_000,
    "process_pool_update_fees": 150_000,
    "process_swap_set_owner_only": 150_000,
}

CONSOLIDATION_BASE_UNITS = 4_000
CONSOLIDATION_PER_POOL_UNITS = 5_000
CONSOLIDATION_MAX_UNITS = 150_000

SMALL_DONATION_THRESHOLD_LAMPORTS = 1_000 * LAMPORTS_PER_SOL
SMALL_DONATION_UNITS = 25_000
LARGE_DONATION_UNITS = 120_000


@dataclass
class BudgetContext:
    """Dynamic inputs for operations whose cost depends on arguments."""

    pool_count: int = 0
    donation_amount: int = 0
    """Donation in lamports."""

    operation: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


class ResourceBudgeter:
    """Compute-unit lookup for contract operations."""

    def get_budget(self, operation: str, context: Optional[BudgetContext] = None) -> int:
        if operation == OP_CONSOLIDATE and context is not None:
            units = self.consolidation_units(context.pool_count)
            logger.debug(
                f"Consolidation budget | pool_count={context.pool_count} | units={units}"
            )
            return units

        if operation == OP_DONATE and context is not None:
            units = self.donation_units(context.donation_amount)
            logger.debug(
                f"Donation budget | lamports={context.donation_amount} | units={units}"
            )
            return units

        units = STATIC_COMPUTE_UNITS.get(operation)
        if units is not None:
            logger.debug(f"Static budget | operation={operation} | units={units}")
            return units

        logger.warning(
            f"Unknown operation, using default budget | operation={operation} | "
            f"units={DEFAULT_COMPUTE_UNITS}"
        )
        return DEFAULT_COMPUTE_UNITS

    @staticmethod
    def consolidation_units(pool_count: int) -> int:
        calculated = CONSOLIDATION_BASE_UNITS + CONSOLIDATION_PER_POOL_UNITS * max(pool_count, 0)
        return min(calculated, CONSOLIDATION_MAX_UNITS)

    @staticmethod
    def donation_units(donation_lamports: int) -> int:
        if donation_lamports <= SMALL_DONATION_THRESHOLD_LAMPORTS:
            return SMALL_DONATION_UNITS
        return LARGE_DONATION_UNITS


__all__ = [
    "BudgetContext",
    "ResourceBudgeter",
    "STATIC_COMPUTE_UNITS",
    "DEFAULT_COMPUTE_UNITS",
    "OP_DEPOSIT",
    "OP_WITHDRAW",
    "OP_SWAP",
    "OP_POOL_INITIALIZE",
    "OP_CONSOLIDATE",
    "OP_DONATE",
]
