"""
Core Module - Shared System State.

============================================================
RESPONSIBILITY
============================================================
Holds the one process-wide "is the system paused" flag and the
last lifecycle state published by the LifecycleController.

- Single writer: the LifecycleController
- Many readers: every worker loop, health checks, operations
- Injected explicitly, never imported as a global

============================================================
"""

import logging
import threading
from typing import Optional

from .exceptions import LifecycleError


logger = logging.getLogger(__name__)


class SystemState:
    """
    Shared lifecycle snapshot.

    Reads and writes are guarded by a plain lock so a reader on any
    thread sees the (state, paused) pair from one single update.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state_name = "stopped"
        self._paused = False

    @property
    def is_paused(self) -> bool:
        """Whether the system is currently paused."""
        with self._lock:
            return self._paused

    @property
    def is_started(self) -> bool:
        """Whether the system is started and operational."""
        with self._lock:
            return self._state_name == "started"

    @property
    def state_name(self) -> str:
        """Name of the last published lifecycle state."""
        with self._lock:
            return self._state_name

    def update(self, state_name: str, paused: bool) -> None:
        """Publish a new lifecycle state (LifecycleController only)."""
        with self._lock:
            self._state_name = state_name
            self._paused = paused
        logger.debug(f"System state updated | state={state_name} | paused={paused}")

    def ensure_operational(self, operation: Optional[str] = None) -> None:
        """
        Raise if the system cannot accept work.

        Raises:
            LifecycleError: If the system is not started or is paused
        """
        with self._lock:
            state_name = self._state_name
            paused = self._paused

        context = {"operation": operation} if operation else {}
        if paused:
            raise LifecycleError("System is paused", context=context)
        if state_name != "started":
            raise LifecycleError(
                f"System is not started. Current state: {state_name}",
                context=context,
            )


__all__ = ["SystemState"]
