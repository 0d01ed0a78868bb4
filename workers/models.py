"""
Workers - Models.

============================================================
RESPONSIBILITY
============================================================
Data models for stress-test workers.

- WorkerConfig: persisted identity, wallet and behavior flags
- WorkerStatistics: persisted counters, written by the worker loop
- WorkerError: one recorded failure
- WorkerContext: per-iteration runtime state (slippage, retries)

============================================================
OWNERSHIP
============================================================
- status: written by the WorkerPool only
- statistics: written by the worker's own loop only
- private key: persisted, never logged, never in to_dict() by default

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from compute_budget.budgeter import OP_DEPOSIT, OP_SWAP, OP_WITHDRAW
from core.constants import DEFAULT_SLIPPAGE_TOLERANCE
from core.types import WorkerKind, WorkerStatus
from pools.models import PoolState, SwapDirection, TokenSide


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


OPERATION_BY_KIND: Dict[WorkerKind, str] = {
    WorkerKind.DEPOSIT: OP_DEPOSIT,
    WorkerKind.WITHDRAWAL: OP_WITHDRAW,
    WorkerKind.SWAP: OP_SWAP,
}


# ============================================================
# WORKER CONFIG
# ============================================================

@dataclass
class WorkerConfig:
    """Persisted configuration of one worker."""

    kind: WorkerKind
    pool_id: str
    token_side: TokenSide = TokenSide.A
    swap_direction: Optional[SwapDirection] = None
    initial_amount: int = 0
    auto_refill: bool = False
    share_output: bool = False

    worker_id: str = ""
    status: WorkerStatus = WorkerStatus.CREATED
    created_at: datetime = field(default_factory=_utcnow)
    last_operation_at: Optional[datetime] = None

    public_key: Optional[str] = None
    private_key: Optional[bytes] = field(default=None, repr=False)

    @property
    def has_wallet(self) -> bool:
        return self.public_key is not None and self.private_key is not None

    @property
    def operation_name(self) -> str:
        return OPERATION_BY_KIND[self.kind]

    def to_dict(self, include_private_key: bool = False) -> Dict[str, Any]:
        """
        Serialize to dictionary.

        The private key is included only for persistence.
        """
        data = {
            "worker_id": self.worker_id,
            "kind": self.kind.value,
            "pool_id": self.pool_id,
            "token_side": self.token_side.value,
            "swap_direction": self.swap_direction.value if self.swap_direction else None,
            "initial_amount": self.initial_amount,
            "auto_refill": self.auto_refill,
            "share_output": self.share_output,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "last_operation_at": (
                self.last_operation_at.isoformat() if self.last_operation_at else None
            ),
            "public_key": self.public_key,
            "has_wallet": self.has_wallet,
        }
        if include_private_key:
            data["private_key"] = self.private_key.hex() if self.private_key else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkerConfig":
        """Deserialize from dictionary."""
        private_key = data.get("private_key")
        return cls(
            worker_id=data["worker_id"],
            kind=WorkerKind(data["kind"]),
            pool_id=data["pool_id"],
            token_side=TokenSide(data.get("token_side", TokenSide.A.value)),
            swap_direction=(
                SwapDirection(data["swap_direction"]) if data.get("swap_direction") else None
            ),
            initial_amount=int(data.get("initial_amount", 0)),
            auto_refill=bool(data.get("auto_refill", False)),
            share_output=bool(data.get("share_output", False)),
            status=WorkerStatus(data.get("status", WorkerStatus.CREATED.value)),
            created_at=_parse_dt(data.get("created_at")) or _utcnow(),
            last_operation_at=_parse_dt(data.get("last_operation_at")),
            public_key=data.get("public_key"),
            private_key=bytes.fromhex(private_key) if private_key else None,
        )


# ============================================================
# STATISTICS
# ============================================================

@dataclass
class WorkerError:
    """One recorded worker failure."""

    message: str
    operation: str = ""
    code: Optional[int] = None
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "operation": self.operation,
            "code": self.code,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkerError":
        return cls(
            message=data["message"],
            operation=data.get("operation", ""),
            code=data.get("code"),
            timestamp=_parse_dt(data.get("timestamp")) or _utcnow(),
        )


@dataclass
class WorkerStatistics:
    """Operation counters for one worker. Counters never decrease."""

    successful_operations: int = 0
    failed_operations: int = 0
    total_volume_processed: int = 0
    total_fees_paid: int = 0
    last_operation_at: Optional[datetime] = None
    last_error: Optional[str] = None
    recent_errors: List[WorkerError] = field(default_factory=list)

    @property
    def total_operations(self) -> int:
        return self.successful_operations + self.failed_operations

    def record_success(self, volume: int, fee: int) -> None:
        self.successful_operations += 1
        self.total_volume_processed += volume
        self.total_fees_paid += fee
        self.last_operation_at = _utcnow()

    def record_failure(self, error: WorkerError, max_recent: int = 50) -> None:
        self.failed_operations += 1
        self.last_operation_at = error.timestamp
        self.last_error = error.message
        self.recent_errors.append(error)
        if len(self.recent_errors) > max_recent:
            self.recent_errors = self.recent_errors[-max_recent:]

    def copy(self) -> "WorkerStatistics":
        return WorkerStatistics(
            successful_operations=self.successful_operations,
            failed_operations=self.failed_operations,
            total_volume_processed=self.total_volume_processed,
            total_fees_paid=self.total_fees_paid,
            last_operation_at=self.last_operation_at,
            last_error=self.last_error,
            recent_errors=list(self.recent_errors),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "successful_operations": self.successful_operations,
            "failed_operations": self.failed_operations,
            "total_volume_processed": self.total_volume_processed,
            "total_fees_paid": self.total_fees_paid,
            "last_operation_at": (
                self.last_operation_at.isoformat() if self.last_operation_at else None
            ),
            "last_error": self.last_error,
            "recent_errors": [e.to_dict() for e in self.recent_errors],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkerStatistics":
        return cls(
            successful_operations=int(data.get("successful_operations", 0)),
            failed_operations=int(data.get("failed_operations", 0)),
            total_volume_processed=int(data.get("total_volume_processed", 0)),
            total_fees_paid=int(data.get("total_fees_paid", 0)),
            last_operation_at=_parse_dt(data.get("last_operation_at")),
            last_error=data.get("last_error"),
            recent_errors=[WorkerError.from_dict(e) for e in data.get("recent_errors", [])],
        )


# ============================================================
# RUNTIME CONTEXT
# ============================================================

@dataclass
class WorkerContext:
    """
    Runtime state for one loop iteration.

    Rebuilt from the WorkerConfig at the start of every iteration,
    so slippage widening and retry counts never leak between
    iterations.
    """

    worker_id: str
    kind: WorkerKind
    pool_id: str
    token_side: TokenSide
    swap_direction: Optional[SwapDirection]
    wallet_address: str
    initial_amount: int
    auto_refill: bool
    share_output: bool

    slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE
    retry_count: int = 0
    last_operation: str = ""

    @classmethod
    def from_config(
        cls,
        config: WorkerConfig,
        slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE,
    ) -> "WorkerContext":
        return cls(
            worker_id=config.worker_id,
            kind=config.kind,
            pool_id=config.pool_id,
            token_side=config.token_side,
            swap_direction=config.swap_direction,
            wallet_address=config.public_key or "",
            initial_amount=config.initial_amount,
            auto_refill=config.auto_refill,
            share_output=config.share_output,
            slippage_tolerance=slippage_tolerance,
            last_operation=config.operation_name,
        )

    def holding_mint(self, pool: PoolState) -> str:
        """Mint the worker spends on each operation."""
        if self.kind == WorkerKind.WITHDRAWAL:
            return pool.lp_mint(self.token_side)
        if self.kind == WorkerKind.SWAP:
            return pool.input_mint(self.swap_direction)
        return pool.token_mint(self.token_side)

    def refill_mint(self, pool: PoolState) -> str:
        """Underlying token minted on refill (LP tokens cannot be minted)."""
        if self.kind == WorkerKind.SWAP:
            return pool.input_mint(self.swap_direction)
        return pool.token_mint(self.token_side)


__all__ = [
    "WorkerKind",
    "WorkerStatus",
    "WorkerConfig",
    "WorkerError",
    "WorkerStatistics",
    "WorkerContext",
    "OPERATION_BY_KIND",
]
