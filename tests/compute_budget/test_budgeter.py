"""
Tests for the Resource Budgeter.

============================================================
PURPOSE
============================================================
- Static per-operation budgets
- Consolidation and donation formulas
- Default budget for unknown operations

============================================================
"""

import pytest

from compute_budget.budgeter import (
    DEFAULT_COMPUTE_UNITS,
    OP_CONSOLIDATE,
    OP_DEPOSIT,
    OP_DONATE,
    OP_SWAP,
    OP_WITHDRAW,
    BudgetContext,
    ResourceBudgeter,
)
from core.constants import LAMPORTS_PER_SOL


@pytest.fixture
def budgeter():
    return ResourceBudgeter()


class TestStaticBudgets:

    @pytest.mark.parametrize("operation,units", [
        (OP_DEPOSIT, 310_000),
        (OP_WITHDRAW, 290_000),
        (OP_SWAP, 250_000),
        ("process_pool_pause", 150_000),
    ])
    def test_known_operation(self, budgeter, operation, units):
        assert budgeter.get_budget(operation) == units

    def test_unknown_operation_gets_default(self, budgeter):
        assert budgeter.get_budget("process_something_new") == DEFAULT_COMPUTE_UNITS

    def test_dynamic_operation_without_context_uses_table(self, budgeter):
        assert budgeter.get_budget(OP_CONSOLIDATE) == 150_000
        assert budgeter.get_budget(OP_DONATE) == 150_000


class TestConsolidation:

    def test_five_pools(self, budgeter):
        assert budgeter.get_budget(OP_CONSOLIDATE, BudgetContext(pool_count=5)) == 29_000

    def test_capped_for_many_pools(self, budgeter):
        assert budgeter.get_budget(OP_CONSOLIDATE, BudgetContext(pool_count=30)) == 150_000

    def test_zero_pools(self, budgeter):
        assert budgeter.get_budget(OP_CONSOLIDATE, BudgetContext(pool_count=0)) == 4_000


class TestDonation:

    def test_small_donation(self, budgeter):
        context = BudgetContext(donation_amount=5 * LAMPORTS_PER_SOL)
        assert budgeter.get_budget(OP_DONATE, context) == 25_000

    def test_threshold_is_small(self, budgeter):
        context = BudgetContext(donation_amount=1_000 * LAMPORTS_PER_SOL)
        assert budgeter.get_budget(OP_DONATE, context) == 25_000

    def test_large_donation(self, budgeter):
        context = BudgetContext(donation_amount=1_000 * LAMPORTS_PER_SOL + 1)
        assert budgeter.get_budget(OP_DONATE, context) == 120_000
