"""
Contract Errors - Models.

============================================================
ERROR TAXONOMY
============================================================
1. TRANSIENT_RETRYABLE        - pauses, liquidity, slippage
2. TRANSIENT_WITH_SIDE_EFFECT - insufficient funds (refill, then retry)
3. FATAL_CONFIGURATION        - bad token account / LP token type
4. UNKNOWN_BOUNDED            - unparsed or unmapped, bounded retries

============================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Typed failure kind parsed from a raw error."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    POOL_PAUSED = "pool_paused"
    SYSTEM_PAUSED = "system_paused"
    INSUFFICIENT_LIQUIDITY = "insufficient_liquidity"
    SLIPPAGE_EXCEEDED = "slippage_exceeded"
    INVALID_TOKEN_ACCOUNT = "invalid_token_account"
    INVALID_LP_TOKEN_TYPE = "invalid_lp_token_type"
    POOL_SWAPS_PAUSED = "pool_swaps_paused"
    UNKNOWN = "unknown"


class ErrorCategory(Enum):
    """Recovery category of an error kind."""

    TRANSIENT_RETRYABLE = "transient_retryable"
    TRANSIENT_WITH_SIDE_EFFECT = "transient_with_side_effect"
    FATAL_CONFIGURATION = "fatal_configuration"
    UNKNOWN_BOUNDED = "unknown_bounded"


class RecoveryVerdict(Enum):
    """What the worker loop does after recovery."""

    RETRY = "retry"
    """Retry the same operation now."""

    RECORD_AND_CONTINUE = "record_and_continue"
    """Record the failure and move on to the next iteration."""

    CANCELLED = "cancelled"
    """The worker was cancelled while waiting."""


@dataclass(frozen=True)
class ErrorClassification:
    """Result of classifying one raw failure."""

    kind: ErrorKind
    category: ErrorCategory
    code: Optional[int]
    recoverable: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "category": self.category.value,
            "code": self.code,
            "recoverable": self.recoverable,
            "message": self.message,
        }

    def __str__(self) -> str:
        code = self.code if self.code is not None else "-"
        return f"[{self.kind.value}] {code}: {self.message}"


@dataclass
class RecoveryDecision:
    """Verdict of the recovery engine plus the reason recorded with it."""

    verdict: RecoveryVerdict
    reason: str = ""

    @property
    def should_retry(self) -> bool:
        return self.verdict == RecoveryVerdict.RETRY


__all__ = [
    "ErrorKind",
    "ErrorCategory",
    "RecoveryVerdict",
    "ErrorClassification",
    "RecoveryDecision",
]
