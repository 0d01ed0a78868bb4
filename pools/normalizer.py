"""
Pools - Ratio Normalizer.

============================================================
RESPONSIBILITY
============================================================
Canonicalizes a token pair and its exchange ratio.

- The byte-wise smaller mint is always token A
- Tokens and ratio sides swap together, so the rate is preserved
- One pool identity per unordered pair
- Rejects ratios where neither side is anchored to one whole token

============================================================
ANCHOR RULE
============================================================
For decimals (dA, dB), the ratio A:B is anchored when
ratio_a == 10**dA (1 whole A buys ratio_b base units of B) or
ratio_b == 10**dB (1 whole B buys ratio_a base units of A).
A 1:1 pool with both sides anchored is valid.

============================================================
"""

import hashlib
import logging
from typing import Tuple

from core.constants import EXTREME_RATE_LOWER, EXTREME_RATE_UPPER
from core.exceptions import InvalidPoolRatioError, PoolError

from .models import PoolRatioConfig, RatioValidation


logger = logging.getLogger(__name__)


def derive_pool_id(token_a_mint: str, token_b_mint: str) -> str:
    """Deterministic pool id for an already-ordered mint pair."""
    digest = hashlib.sha256((token_a_mint + token_b_mint).encode("utf-8"))
    return digest.hexdigest()


class RatioNormalizer:
    """
    Canonical ordering of pool tokens and ratios.

    Stateless; safe to share between workers.
    """

    def __init__(self) -> None:
        self._logger = logger

    # --------------------------------------------------------
    # NORMALIZATION
    # --------------------------------------------------------

    def normalize(
        self,
        mint_a: str,
        mint_b: str,
        ratio_a: int,
        ratio_b: int,
    ) -> PoolRatioConfig:
        """
        Build the canonical PoolRatioConfig for a pair.

        Raises:
            PoolError: If both mints are the same
            InvalidPoolRatioError: If either ratio side is not positive
        """
        if mint_a == mint_b:
            raise PoolError(f"Pool tokens must differ | mint={mint_a}")
        if ratio_a <= 0 or ratio_b <= 0:
            raise InvalidPoolRatioError(
                f"Ratio sides must be positive | ratio_a={ratio_a} | ratio_b={ratio_b}",
                actual_a=ratio_a,
                actual_b=ratio_b,
            )

        should_swap = mint_a.encode("utf-8") > mint_b.encode("utf-8")

        if should_swap:
            config = PoolRatioConfig(
                token_a_mint=mint_b,
                token_b_mint=mint_a,
                ratio_a_numerator=ratio_b,
                ratio_b_denominator=ratio_a,
                pool_id=derive_pool_id(mint_b, mint_a),
                was_swapped=True,
            )
            self._logger.info(
                f"Token order swapped | token_a={config.token_a_mint} | "
                f"token_b={config.token_b_mint} | ratio={config.ratio_display}"
            )
            return config

        return PoolRatioConfig(
            token_a_mint=mint_a,
            token_b_mint=mint_b,
            ratio_a_numerator=ratio_a,
            ratio_b_denominator=ratio_b,
            pool_id=derive_pool_id(mint_a, mint_b),
            was_swapped=False,
        )

    def normalize_config(self, config: PoolRatioConfig) -> PoolRatioConfig:
        """
        Normalize an existing config.

        A config that is already canonical is returned unchanged.
        """
        if config.token_a_mint.encode("utf-8") < config.token_b_mint.encode("utf-8"):
            return config
        return self.normalize(
            config.token_a_mint,
            config.token_b_mint,
            config.ratio_a_numerator,
            config.ratio_b_denominator,
        )

    # --------------------------------------------------------
    # VALIDATION
    # --------------------------------------------------------

    def validate(
        self,
        config: PoolRatioConfig,
        decimals_a: int,
        decimals_b: int,
    ) -> RatioValidation:
        """
        Check the anchor rule and flag extreme rates.

        Raises:
            InvalidPoolRatioError: If neither side is anchored
        """
        expected_a = 10 ** decimals_a
        expected_b = 10 ** decimals_b

        a_anchored = config.ratio_a_numerator == expected_a
        b_anchored = config.ratio_b_denominator == expected_b

        if not a_anchored and not b_anchored:
            message = (
                f"Invalid pool ratio: neither side is anchored to 1 | "
                f"expected_a={expected_a} | expected_b={expected_b} | "
                f"actual_a={config.ratio_a_numerator} | actual_b={config.ratio_b_denominator}"
            )
            self._logger.error(message)
            raise InvalidPoolRatioError(
                message,
                expected_a=expected_a,
                expected_b=expected_b,
                actual_a=config.ratio_a_numerator,
                actual_b=config.ratio_b_denominator,
                pool_id=config.pool_id,
            )

        rate = config.exchange_rate
        extreme = rate > EXTREME_RATE_UPPER or rate < EXTREME_RATE_LOWER
        if extreme:
            self._logger.warning(
                f"Extreme exchange rate detected | pool_id={config.pool_id} | rate={rate:.6f}"
            )
        else:
            self._logger.info(f"Pool ratio validated | 1 token A = {rate:.6f} token B")

        return RatioValidation(
            a_anchored=a_anchored,
            b_anchored=b_anchored,
            exchange_rate=rate,
            extreme=extreme,
        )

    # --------------------------------------------------------
    # HELPERS
    # --------------------------------------------------------

    @staticmethod
    def exchange_rate(config: PoolRatioConfig) -> float:
        return config.exchange_rate

    @staticmethod
    def rate_display(config: PoolRatioConfig) -> str:
        return f"1 {config.token_a_mint} = {config.exchange_rate:.6f} {config.token_b_mint}"

    @staticmethod
    def build_anchored_ratio(
        decimals_a: int,
        decimals_b: int,
        whole_number: int,
        direction: str = "a_to_b",
    ) -> Tuple[int, int]:
        """
        Build an anchored (ratio_a, ratio_b) from a whole-number rate.

        "a_to_b": 1 A = N B.  "b_to_a": 1 B = N A.
        """
        if whole_number <= 0:
            raise InvalidPoolRatioError(
                f"Whole-number rate must be positive | rate={whole_number}"
            )
        if direction == "a_to_b":
            return 10 ** decimals_a, whole_number * 10 ** decimals_b
        if direction == "b_to_a":
            return whole_number * 10 ** decimals_a, 10 ** decimals_b
        raise PoolError(f"Unknown ratio direction: {direction}")


__all__ = ["RatioNormalizer", "derive_pool_id"]
