"""
Pools Package.

Canonical token ordering and anchored exchange ratios for
fixed-ratio pools.
"""

from .models import (
    PoolRatioConfig,
    PoolRegistryEntry,
    PoolState,
    RatioValidation,
    SwapDirection,
    SwapQuote,
    TokenSide,
)
from .normalizer import RatioNormalizer, derive_pool_id


__all__ = [
    "PoolRatioConfig",
    "PoolRegistryEntry",
    "PoolState",
    "RatioValidation",
    "SwapDirection",
    "SwapQuote",
    "TokenSide",
    "RatioNormalizer",
    "derive_pool_id",
]
