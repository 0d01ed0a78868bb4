"""
Tests for Pool Ratio Normalization.

============================================================
PURPOSE
============================================================
- Canonical token ordering and pool identity
- Anchor rule validation
- Fixed-ratio swap quotes

============================================================
"""

import pytest

from core.exceptions import InvalidPoolRatioError, PoolError
from pools.models import PoolRegistryEntry, PoolState, SwapDirection, TokenSide
from pools.normalizer import RatioNormalizer, derive_pool_id


MINT_LOW = "AAAAmintLow111111111111111111111111111111111"
MINT_HIGH = "ZZZZmintHigh11111111111111111111111111111111"


@pytest.fixture
def normalizer():
    return RatioNormalizer()


def make_pool_state(ratio_a: int = 1_000_000, ratio_b: int = 10_000_000_000) -> PoolState:
    return PoolState(
        pool_id=derive_pool_id(MINT_LOW, MINT_HIGH),
        token_a_mint=MINT_LOW,
        token_b_mint=MINT_HIGH,
        token_a_decimals=6,
        token_b_decimals=9,
        ratio_a_numerator=ratio_a,
        ratio_b_denominator=ratio_b,
        lp_mint_a="lp_a",
        lp_mint_b="lp_b",
    )


# ============================================================
# NORMALIZATION
# ============================================================

class TestNormalize:
    """Canonical ordering."""

    def test_already_ordered_pair_is_kept(self, normalizer):
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, 1_000_000, 5_000)

        assert config.token_a_mint == MINT_LOW
        assert config.token_b_mint == MINT_HIGH
        assert config.ratio_a_numerator == 1_000_000
        assert config.ratio_b_denominator == 5_000
        assert config.was_swapped is False

    def test_reversed_pair_swaps_tokens_and_ratio_together(self, normalizer):
        config = normalizer.normalize(MINT_HIGH, MINT_LOW, 5_000, 1_000_000)

        assert config.token_a_mint == MINT_LOW
        assert config.token_b_mint == MINT_HIGH
        assert config.ratio_a_numerator == 1_000_000
        assert config.ratio_b_denominator == 5_000
        assert config.was_swapped is True

    def test_pool_id_is_order_independent(self, normalizer):
        forward = normalizer.normalize(MINT_LOW, MINT_HIGH, 1, 2)
        backward = normalizer.normalize(MINT_HIGH, MINT_LOW, 2, 1)

        assert forward.pool_id == backward.pool_id
        assert forward.pool_id == derive_pool_id(MINT_LOW, MINT_HIGH)

    def test_exchange_rate_survives_swap(self, normalizer):
        forward = normalizer.normalize(MINT_LOW, MINT_HIGH, 1_000, 3_000)
        backward = normalizer.normalize(MINT_HIGH, MINT_LOW, 3_000, 1_000)

        assert forward.exchange_rate == pytest.approx(backward.exchange_rate)
        assert forward.exchange_rate == pytest.approx(3.0)

    def test_normalize_config_is_idempotent(self, normalizer):
        config = normalizer.normalize(MINT_HIGH, MINT_LOW, 7, 11)
        assert normalizer.normalize_config(config) == config

    def test_same_mint_rejected(self, normalizer):
        with pytest.raises(PoolError):
            normalizer.normalize(MINT_LOW, MINT_LOW, 1, 1)

    @pytest.mark.parametrize("ratio_a,ratio_b", [(0, 1), (1, 0), (-5, 10)])
    def test_non_positive_ratio_rejected(self, normalizer, ratio_a, ratio_b):
        with pytest.raises(InvalidPoolRatioError):
            normalizer.normalize(MINT_LOW, MINT_HIGH, ratio_a, ratio_b)


# ============================================================
# VALIDATION
# ============================================================

class TestValidate:
    """Anchor rule."""

    def test_a_side_anchored(self, normalizer):
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, 10 ** 6, 2_500_000_000)
        result = normalizer.validate(config, 6, 9)

        assert result.a_anchored is True
        assert result.b_anchored is False
        assert result.exchange_rate == pytest.approx(2_500.0)

    def test_b_side_anchored(self, normalizer):
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, 4_000_000, 10 ** 9)
        result = normalizer.validate(config, 6, 9)

        assert result.a_anchored is False
        assert result.b_anchored is True

    def test_one_to_one_pool_is_valid(self, normalizer):
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, 10 ** 6, 10 ** 6)
        result = normalizer.validate(config, 6, 6)

        assert result.a_anchored and result.b_anchored

    def test_unanchored_ratio_rejected(self, normalizer):
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, 3, 7)

        with pytest.raises(InvalidPoolRatioError) as exc_info:
            normalizer.validate(config, 6, 9)

        assert exc_info.value.context["expected_a"] == 10 ** 6
        assert exc_info.value.context["actual_b"] == 7

    def test_extreme_rate_flagged_but_accepted(self, normalizer):
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, 1, 10 ** 9)
        result = normalizer.validate(config, 0, 9)

        assert result.extreme is True


class TestAnchoredRatio:
    """Whole-number rate helper."""

    def test_a_to_b(self):
        assert RatioNormalizer.build_anchored_ratio(6, 9, 10) == (10 ** 6, 10 * 10 ** 9)

    def test_b_to_a(self):
        assert RatioNormalizer.build_anchored_ratio(6, 9, 4, "b_to_a") == (4 * 10 ** 6, 10 ** 9)

    def test_non_positive_rate_rejected(self):
        with pytest.raises(InvalidPoolRatioError):
            RatioNormalizer.build_anchored_ratio(6, 9, 0)

    def test_built_ratio_validates(self, normalizer):
        ratio_a, ratio_b = RatioNormalizer.build_anchored_ratio(6, 9, 25)
        config = normalizer.normalize(MINT_LOW, MINT_HIGH, ratio_a, ratio_b)
        assert normalizer.validate(config, 6, 9).a_anchored


# ============================================================
# POOL STATE
# ============================================================

class TestPoolState:
    """Quotes and mint lookups."""

    def test_quote_a_to_b(self):
        pool = make_pool_state()
        quote = pool.quote(SwapDirection.A_TO_B, 2_000_000)

        assert quote.output_amount == 20_000_000_000

    def test_quote_b_to_a_rounds_down(self):
        pool = make_pool_state()
        quote = pool.quote(SwapDirection.B_TO_A, 10_000_000_001)

        assert quote.output_amount == 1_000_000

    def test_minimum_output(self):
        quote = make_pool_state().quote(SwapDirection.A_TO_B, 1_000_000)
        assert quote.minimum_output(0.01) == 9_900_000_000

    def test_mint_lookups(self):
        pool = make_pool_state()

        assert pool.token_mint(TokenSide.B) == MINT_HIGH
        assert pool.lp_mint(TokenSide.A) == "lp_a"
        assert pool.input_mint(SwapDirection.B_TO_A) == MINT_HIGH
        assert pool.output_mint(SwapDirection.B_TO_A) == MINT_LOW

    def test_registry_entry_dict_round_trip(self, normalizer):
        config = normalizer.normalize(MINT_HIGH, MINT_LOW, 9, 10 ** 6)
        entry = PoolRegistryEntry(pool_id=config.pool_id, ratio=config, token_a_decimals=6)

        restored = PoolRegistryEntry.from_dict(entry.to_dict())

        assert restored == entry
        assert restored.token_b_decimals is None
