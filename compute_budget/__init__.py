"""
Compute Budget Package.

Per-operation compute-unit budgets for contract instructions.
"""

from .budgeter import (
    DEFAULT_COMPUTE_UNITS,
    OP_CONSOLIDATE,
    OP_DEPOSIT,
    OP_DONATE,
    OP_POOL_INITIALIZE,
    OP_SWAP,
    OP_WITHDRAW,
    STATIC_COMPUTE_UNITS,
    BudgetContext,
    ResourceBudgeter,
)


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
