"""
Lifecycle Package.

Service state machine, the Engine it builds on every start,
startup routines, the caller-facing operations facade and
the command-line runner.
"""

from .controller import LifecycleController
from .engine import Engine
from .models import (
    HealthStatus,
    ServiceState,
    StateTransition,
    TRANSIENT_STATES,
    VALID_TRANSITIONS,
)
from .operations import CoreOperations
from .startup import (
    ContractVersionCheck,
    CoreWalletInitializer,
    PoolRegistryValidator,
    StartupRoutine,
)


__all__ = [
    "LifecycleController",
    "Engine",
    "CoreOperations",
    "ServiceState",
    "StateTransition",
    "HealthStatus",
    "TRANSIENT_STATES",
    "VALID_TRANSITIONS",
    "StartupRoutine",
    "ContractVersionCheck",
    "CoreWalletInitializer",
    "PoolRegistryValidator",
]
