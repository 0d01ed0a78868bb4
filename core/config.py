"""
Core Module - Configuration.

============================================================
PURPOSE
============================================================
All configuration for the stress harness.

CRITICAL CONSTRAINTS:
- Every recovery wait has a hard iteration cap
- Every wait is interruptible by worker cancellation
- Defaults match the values the contract was load-tested with

Values load from the environment (STRESS_* variables, with an
optional .env file) or are built directly in tests.

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from .constants import (
    BURN_ADDRESS,
    DEFAULT_SLIPPAGE_TOLERANCE,
    LAMPORTS_PER_SOL,
    MAX_SLIPPAGE_TOLERANCE,
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


# ============================================================
# RECOVERY CONFIGURATION
# ============================================================

@dataclass
class RecoveryConfig:
    """
    Recovery policy timings for classified contract errors.

    SAFETY: Every poll loop is capped; exceeding the cap is a
    permanent failure for the operation, never a crash of the loop.
    """

    poll_interval_seconds: float = 30.0
    """Interval between pause-flag polls."""

    pool_pause_max_polls: int = 120
    """Pool pause polls before giving up (~1 hour)."""

    system_pause_max_polls: int = 240
    """System pause polls before giving up (~2 hours)."""

    swaps_pause_max_polls: int = 60
    """Swap pause polls before giving up (~30 minutes)."""

    poll_log_every: int = 4
    """Log a progress line every N polls."""

    insufficient_funds_delay_seconds: float = 5.0
    """Wait after a refill request before retrying."""

    auto_refill_threshold: float = 0.05
    """Refill when holding drops below initial_amount * threshold."""

    insufficient_liquidity_delay_seconds: float = 10.0
    """Wait before retrying when the pool lacks liquidity."""

    slippage_delay_seconds: float = 2.0
    """Wait before retrying with a wider slippage tolerance."""

    slippage_multiplier: float = 1.5
    """Tolerance growth factor per slippage failure."""

    max_slippage_tolerance: float = MAX_SLIPPAGE_TOLERANCE
    """Tolerance is never raised above this."""

    unknown_max_retries: int = 3
    """Retries for unclassified errors before recording."""

    unknown_retry_delay_seconds: float = 5.0
    """Fixed delay between retries of unclassified errors."""

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if self.poll_interval_seconds <= 0:
            errors.append("poll_interval_seconds must be positive")
        for name in ("pool_pause_max_polls", "system_pause_max_polls", "swaps_pause_max_polls"):
            if getattr(self, name) < 1:
                errors.append(f"{name} must be at least 1")
        if self.poll_log_every < 1:
            errors.append("poll_log_every must be at least 1")
        if self.slippage_multiplier <= 1.0:
            errors.append("slippage_multiplier must be greater than 1.0")
        if not 0 < self.max_slippage_tolerance < 1:
            errors.append("max_slippage_tolerance must be between 0 and 1")
        if self.unknown_max_retries < 0:
            errors.append("unknown_max_retries cannot be negative")
        return errors


# ============================================================
# WORKER POOL CONFIGURATION
# ============================================================

@dataclass
class WorkerPoolConfig:
    """
    Worker loop pacing and funding.
    """

    min_delay_ms: int = 750
    """Minimum jittered delay between operations."""

    max_delay_ms: int = 2000
    """Maximum jittered delay between operations."""

    stop_timeout_seconds: float = 30.0
    """Upper bound for waiting on a loop to observe cancellation."""

    max_attempts_per_operation: int = 10
    """Attempts of one operation (first try plus retries) per iteration."""

    error_backoff_seconds: float = 5.0
    """Back-off after an unexpected loop error."""

    paused_poll_seconds: float = 1.0
    """Re-check interval while the system is paused."""

    initial_slippage_tolerance: float = DEFAULT_SLIPPAGE_TOLERANCE
    """Slippage tolerance every operation context starts with."""

    min_operation_amount: int = 1_000
    """Smallest operation amount in token base units."""

    deposit_max_fraction: float = 0.05
    """Largest deposit as a fraction of the holding."""

    withdrawal_max_fraction: float = 0.05
    """Largest withdrawal as a fraction of the LP holding."""

    swap_max_fraction: float = 0.02
    """Largest swap input as a fraction of the holding."""

    min_native_balance: int = LAMPORTS_PER_SOL // 10
    """Top up a worker wallet when its native balance is below this."""

    native_funding_amount: int = LAMPORTS_PER_SOL
    """Native amount sent from the operational wallet on top-up."""

    max_recent_errors: int = 50
    """Recent error entries kept per worker."""

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if self.min_delay_ms < 0 or self.max_delay_ms < self.min_delay_ms:
            errors.append("delay bounds must satisfy 0 <= min_delay_ms <= max_delay_ms")
        if self.stop_timeout_seconds <= 0:
            errors.append("stop_timeout_seconds must be positive")
        if self.max_attempts_per_operation < 1:
            errors.append("max_attempts_per_operation must be at least 1")
        for name in ("deposit_max_fraction", "withdrawal_max_fraction", "swap_max_fraction"):
            value = getattr(self, name)
            if not 0 < value <= 1:
                errors.append(f"{name} must be in (0, 1]")
        return errors


# ============================================================
# DRAIN CONFIGURATION
# ============================================================

@dataclass
class DrainConfig:
    """
    Drain protocol settings.
    """

    burn_address: str = BURN_ADDRESS
    """Unspendable destination for burned holdings."""

    fee_reserve_lamports: int = 10_000_000
    """Native amount left in the worker wallet after the sweep-back."""

    swap_min_output_fraction: float = 0.9
    """Minimum output of the drain swap relative to the ratio output."""


# ============================================================
# CHAIN CONFIGURATION
# ============================================================

@dataclass
class ChainConfig:
    """
    Chain client backend selection.
    """

    backend: str = "simulated"
    """'simulated' (in-memory) or 'gateway' (JSON-RPC signing gateway)."""

    gateway_url: str = "http://127.0.0.1:8899/gateway"
    """JSON-RPC endpoint of the signing gateway."""

    request_timeout_seconds: float = 30.0
    """Per-request timeout for gateway calls."""

    expected_contract_version: Optional[str] = None
    """Deployed contract version must match this when set."""

    max_supported_contract_version: str = "0.19.9999"
    """Deployed versions above this are refused at startup."""

    core_wallet_min_balance: int = 10 * LAMPORTS_PER_SOL
    """Warn when the operational wallet drops below this."""


# ============================================================
# STORAGE CONFIGURATION
# ============================================================

@dataclass
class StorageConfig:
    """
    State store backend selection.
    """

    backend: str = "json"
    """'json' (files under data_dir) or 'sql' (SQLAlchemy URL)."""

    data_dir: str = "data"
    """Directory for JSON state files."""

    database_url: str = "sqlite:///data/stress_harness.db"
    """SQLAlchemy URL for the sql backend."""


# ============================================================
# HARNESS CONFIGURATION
# ============================================================

@dataclass
class HarnessConfig:
    """Top-level configuration for the stress harness."""

    workers: WorkerPoolConfig = field(default_factory=WorkerPoolConfig)
    recovery: RecoveryConfig = field(default_factory=RecoveryConfig)
    drain: DrainConfig = field(default_factory=DrainConfig)
    chain: ChainConfig = field(default_factory=ChainConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    log_level: str = "INFO"
    """Logging level."""

    log_format: str = "text"
    """Log output format (json or text)."""

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "HarnessConfig":
        """Load configuration from environment variables (and .env)."""
        load_dotenv(env_file)

        recovery = RecoveryConfig(
            poll_interval_seconds=float(os.getenv("STRESS_POLL_INTERVAL_SECONDS", "30")),
            pool_pause_max_polls=int(os.getenv("STRESS_POOL_PAUSE_MAX_POLLS", "120")),
            system_pause_max_polls=int(os.getenv("STRESS_SYSTEM_PAUSE_MAX_POLLS", "240")),
            swaps_pause_max_polls=int(os.getenv("STRESS_SWAPS_PAUSE_MAX_POLLS", "60")),
        )
        workers = WorkerPoolConfig(
            min_delay_ms=int(os.getenv("STRESS_MIN_DELAY_MS", "750")),
            max_delay_ms=int(os.getenv("STRESS_MAX_DELAY_MS", "2000")),
            stop_timeout_seconds=float(os.getenv("STRESS_STOP_TIMEOUT_SECONDS", "30")),
        )
        chain = ChainConfig(
            backend=os.getenv("STRESS_CHAIN_BACKEND", "simulated"),
            gateway_url=os.getenv("STRESS_GATEWAY_URL", ChainConfig.gateway_url),
            request_timeout_seconds=float(os.getenv("STRESS_GATEWAY_TIMEOUT_SECONDS", "30")),
            expected_contract_version=os.getenv("STRESS_EXPECTED_CONTRACT_VERSION") or None,
            max_supported_contract_version=os.getenv(
                "STRESS_MAX_SUPPORTED_CONTRACT_VERSION", ChainConfig.max_supported_contract_version
            ),
        )
        storage = StorageConfig(
            backend=os.getenv("STRESS_STORAGE_BACKEND", "json"),
            data_dir=os.getenv("STRESS_DATA_DIR", "data"),
            database_url=os.getenv("STRESS_DATABASE_URL", StorageConfig.database_url),
        )
        drain = DrainConfig(
            burn_address=os.getenv("STRESS_BURN_ADDRESS", BURN_ADDRESS),
            fee_reserve_lamports=int(os.getenv("STRESS_FEE_RESERVE_LAMPORTS", "10000000")),
        )

        return cls(
            workers=workers,
            recovery=recovery,
            drain=drain,
            chain=chain,
            storage=storage,
            log_level=os.getenv("STRESS_LOG_LEVEL", "INFO"),
            log_format=os.getenv("STRESS_LOG_FORMAT", "text"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        errors.extend(self.workers.validate())
        errors.extend(self.recovery.validate())

        if self.chain.backend not in ("simulated", "gateway"):
            errors.append(f"unknown chain backend: {self.chain.backend}")
        if self.storage.backend not in ("json", "sql"):
            errors.append(f"unknown storage backend: {self.storage.backend}")
        if self.log_format not in ("json", "text"):
            errors.append(f"unknown log format: {self.log_format}")
        if not 0 < self.drain.swap_min_output_fraction <= 1:
            errors.append("swap_min_output_fraction must be in (0, 1]")

        return errors


__all__ = [
    "RecoveryConfig",
    "WorkerPoolConfig",
    "DrainConfig",
    "ChainConfig",
    "StorageConfig",
    "HarnessConfig",
]
