"""
Core Module - Constants.

============================================================
RESPONSIBILITY
============================================================
Defines all harness-wide constants.

- Single source of truth for chain magic values
- Documents the meaning of each constant
- Tunable timings live in core.config, not here

============================================================
"""

# ============================================================
# SYSTEM CONSTANTS
# ============================================================

SYSTEM_NAME = "fixed-ratio-stress-harness"
SYSTEM_VERSION = "0.1.0"


# ============================================================
# NATIVE CURRENCY
# ============================================================

LAMPORTS_PER_SOL = 1_000_000_000
"""Native currency base units per whole coin."""

NETWORK_FEE_LAMPORTS = 5_000
"""Flat per-transaction network fee charged by the simulator."""


# ============================================================
# ADDRESSES
# ============================================================

BURN_ADDRESS = "11111111111111111111111111111111"
"""System program address. Tokens sent here are unspendable."""


# ============================================================
# SLIPPAGE
# ============================================================

DEFAULT_SLIPPAGE_TOLERANCE = 0.01
"""Starting slippage tolerance for every operation context (1%)."""

MAX_SLIPPAGE_TOLERANCE = 0.10
"""Slippage tolerance is never raised above 10%."""


# ============================================================
# RATIO SANITY BOUNDS
# ============================================================

EXTREME_RATE_UPPER = 1_000_000
EXTREME_RATE_LOWER = 0.000001


__all__ = [
    "SYSTEM_NAME",
    "SYSTEM_VERSION",
    "LAMPORTS_PER_SOL",
    "NETWORK_FEE_LAMPORTS",
    "BURN_ADDRESS",
    "DEFAULT_SLIPPAGE_TOLERANCE",
    "MAX_SLIPPAGE_TOLERANCE",
    "EXTREME_RATE_UPPER",
    "EXTREME_RATE_LOWER",
]
