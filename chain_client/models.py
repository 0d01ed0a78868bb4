"""
Chain Client - Models.

Results returned by chain client calls. Amounts are integer base
units (token base units or lamports).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pools.models import SwapDirection


@dataclass
class Wallet:
    """
    Wallet credential.

    The private key never appears in repr() or to_dict().
    """

    public_key: str
    private_key: bytes = field(repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {"public_key": self.public_key}


@dataclass
class CoreWallet:
    """The shared operational wallet that funds workers and receives sweeps."""

    wallet: Wallet
    native_balance: int = 0
    created: bool = False
    """True when the wallet was generated during this start."""

    @property
    def public_key(self) -> str:
        return self.wallet.public_key


@dataclass
class DepositResult:
    """Outcome of a liquidity deposit."""

    signature: str
    token_amount_in: int
    lp_tokens_received: int
    network_fee: int = 0


@dataclass
class WithdrawalResult:
    """Outcome of a liquidity withdrawal."""

    signature: str
    lp_tokens_in: int
    tokens_out: int
    network_fee: int = 0


@dataclass
class SwapResult:
    """Outcome of a swap."""

    signature: str
    direction: SwapDirection
    input_amount: int
    output_amount: int
    network_fee: int = 0


@dataclass
class TransactionResult:
    """Outcome of submitting a prepared transaction."""

    signature: str
    success: bool
    network_fee: int = 0
    error: Optional[str] = None
    confirmed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "Wallet",
    "CoreWallet",
    "DepositResult",
    "WithdrawalResult",
    "SwapResult",
    "TransactionResult",
]
