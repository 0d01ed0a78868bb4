"""
Pools - Models.

============================================================
RESPONSIBILITY
============================================================
Data models for fixed-ratio pools.

- PoolRatioConfig: canonical, immutable pool identity + ratio
- PoolState: on-chain pool snapshot as reported by the client
- SwapQuote: ratio-exact swap output

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class TokenSide(Enum):
    """Which side of a pool a worker trades."""

    A = "a"
    B = "b"


class SwapDirection(Enum):
    """Swap direction through a pool."""

    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


# ============================================================
# CANONICAL RATIO CONFIG
# ============================================================

@dataclass(frozen=True)
class PoolRatioConfig:
    """
    Canonical pool configuration.

    Token A is always the byte-wise smaller mint. Computed once at
    pool creation and never mutated.
    """

    token_a_mint: str
    token_b_mint: str
    ratio_a_numerator: int
    """Token A base units on the A side of the ratio."""

    ratio_b_denominator: int
    """Token B base units on the B side of the ratio."""

    pool_id: str
    was_swapped: bool = False

    @property
    def exchange_rate(self) -> float:
        """How many whole-unit-agnostic B units one A unit buys."""
        return self.ratio_b_denominator / self.ratio_a_numerator

    @property
    def ratio_display(self) -> str:
        return f"{self.ratio_a_numerator}:{self.ratio_b_denominator}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "token_a_mint": self.token_a_mint,
            "token_b_mint": self.token_b_mint,
            "ratio_a_numerator": self.ratio_a_numerator,
            "ratio_b_denominator": self.ratio_b_denominator,
            "pool_id": self.pool_id,
            "was_swapped": self.was_swapped,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolRatioConfig":
        """Deserialize from dictionary."""
        return cls(
            token_a_mint=data["token_a_mint"],
            token_b_mint=data["token_b_mint"],
            ratio_a_numerator=int(data["ratio_a_numerator"]),
            ratio_b_denominator=int(data["ratio_b_denominator"]),
            pool_id=data["pool_id"],
            was_swapped=bool(data.get("was_swapped", False)),
        )


@dataclass
class RatioValidation:
    """Outcome of a successful ratio validation."""

    a_anchored: bool
    b_anchored: bool
    exchange_rate: float
    extreme: bool = False


# ============================================================
# ON-CHAIN POOL STATE
# ============================================================

@dataclass
class PoolState:
    """Pool snapshot as reported by the chain client."""

    pool_id: str
    token_a_mint: str
    token_b_mint: str
    token_a_decimals: int
    token_b_decimals: int
    ratio_a_numerator: int
    ratio_b_denominator: int
    lp_mint_a: str
    lp_mint_b: str
    pool_paused: bool = False
    swaps_paused: bool = False
    swap_fee_basis_points: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def token_mint(self, side: TokenSide) -> str:
        """Mint of the underlying token on one side."""
        return self.token_a_mint if side == TokenSide.A else self.token_b_mint

    def lp_mint(self, side: TokenSide) -> str:
        """LP mint issued for deposits on one side."""
        return self.lp_mint_a if side == TokenSide.A else self.lp_mint_b

    def input_mint(self, direction: SwapDirection) -> str:
        return self.token_a_mint if direction == SwapDirection.A_TO_B else self.token_b_mint

    def output_mint(self, direction: SwapDirection) -> str:
        return self.token_b_mint if direction == SwapDirection.A_TO_B else self.token_a_mint

    def quote(self, direction: SwapDirection, input_amount: int) -> "SwapQuote":
        """Ratio-exact output for a swap (fixed-ratio pools have no price impact)."""
        if direction == SwapDirection.A_TO_B:
            output = input_amount * self.ratio_b_denominator // self.ratio_a_numerator
        else:
            output = input_amount * self.ratio_a_numerator // self.ratio_b_denominator
        return SwapQuote(direction=direction, input_amount=input_amount, output_amount=output)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "pool_id": self.pool_id,
            "token_a_mint": self.token_a_mint,
            "token_b_mint": self.token_b_mint,
            "token_a_decimals": self.token_a_decimals,
            "token_b_decimals": self.token_b_decimals,
            "ratio_a_numerator": self.ratio_a_numerator,
            "ratio_b_denominator": self.ratio_b_denominator,
            "lp_mint_a": self.lp_mint_a,
            "lp_mint_b": self.lp_mint_b,
            "pool_paused": self.pool_paused,
            "swaps_paused": self.swaps_paused,
            "swap_fee_basis_points": self.swap_fee_basis_points,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolState":
        """Deserialize from dictionary."""
        created_at = data.get("created_at")
        return cls(
            pool_id=data["pool_id"],
            token_a_mint=data["token_a_mint"],
            token_b_mint=data["token_b_mint"],
            token_a_decimals=int(data["token_a_decimals"]),
            token_b_decimals=int(data["token_b_decimals"]),
            ratio_a_numerator=int(data["ratio_a_numerator"]),
            ratio_b_denominator=int(data["ratio_b_denominator"]),
            lp_mint_a=data["lp_mint_a"],
            lp_mint_b=data["lp_mint_b"],
            pool_paused=bool(data.get("pool_paused", False)),
            swaps_paused=bool(data.get("swaps_paused", False)),
            swap_fee_basis_points=int(data.get("swap_fee_basis_points", 0)),
            created_at=(
                datetime.fromisoformat(created_at) if created_at
                else datetime.now(timezone.utc)
            ),
        )


@dataclass
class SwapQuote:
    """Expected output of a fixed-ratio swap."""

    direction: SwapDirection
    input_amount: int
    output_amount: int

    def minimum_output(self, slippage_tolerance: float) -> int:
        """Output floor after applying a slippage tolerance."""
        return int(self.output_amount * (1.0 - slippage_tolerance))


@dataclass
class PoolRegistryEntry:
    """One pool in the persisted registry."""

    pool_id: str
    ratio: PoolRatioConfig
    token_a_decimals: Optional[int] = None
    token_b_decimals: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "ratio": self.ratio.to_dict(),
            "token_a_decimals": self.token_a_decimals,
            "token_b_decimals": self.token_b_decimals,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PoolRegistryEntry":
        return cls(
            pool_id=data["pool_id"],
            ratio=PoolRatioConfig.from_dict(data["ratio"]),
            token_a_decimals=data.get("token_a_decimals"),
            token_b_decimals=data.get("token_b_decimals"),
        )


__all__ = [
    "TokenSide",
    "SwapDirection",
    "PoolRatioConfig",
    "RatioValidation",
    "PoolState",
    "SwapQuote",
    "PoolRegistryEntry",
]
