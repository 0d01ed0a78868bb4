"""
Drain - Models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class DrainResult:
    """
    Outcome of draining one worker.

    Burn amounts are recorded as soon as the burn succeeds and are
    never reset by a later failure.
    """

    worker_id: str
    worker_kind: str
    operation: str
    executed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    nothing_to_drain: bool = False
    operation_successful: bool = False
    error_message: Optional[str] = None
    transaction_signature: Optional[str] = None

    # Token accounting (base units)
    tokens_used: int = 0
    tokens_burned: int = 0
    lp_tokens_used: int = 0
    lp_tokens_received: int = 0
    lp_tokens_burned: int = 0
    tokens_withdrawn: int = 0
    tokens_swapped_in: int = 0
    tokens_swapped_out: int = 0
    network_fee_paid: int = 0
    swap_direction: Optional[str] = None

    # Native sweep-back
    native_swept: int = 0
    sweep_error: Optional[str] = None

    @property
    def burned_anything(self) -> bool:
        return self.tokens_burned > 0 or self.lp_tokens_burned > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "worker_kind": self.worker_kind,
            "operation": self.operation,
            "executed_at": self.executed_at.isoformat(),
            "nothing_to_drain": self.nothing_to_drain,
            "operation_successful": self.operation_successful,
            "error_message": self.error_message,
            "transaction_signature": self.transaction_signature,
            "tokens_used": self.tokens_used,
            "tokens_burned": self.tokens_burned,
            "lp_tokens_used": self.lp_tokens_used,
            "lp_tokens_received": self.lp_tokens_received,
            "lp_tokens_burned": self.lp_tokens_burned,
            "tokens_withdrawn": self.tokens_withdrawn,
            "tokens_swapped_in": self.tokens_swapped_in,
            "tokens_swapped_out": self.tokens_swapped_out,
            "network_fee_paid": self.network_fee_paid,
            "swap_direction": self.swap_direction,
            "native_swept": self.native_swept,
            "sweep_error": self.sweep_error,
        }


__all__ = ["DrainResult"]
