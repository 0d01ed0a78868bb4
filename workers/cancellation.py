"""
Workers - Cancellation.

============================================================
RESPONSIBILITY
============================================================
Cooperative cancellation for worker loops.

- CancellationHandle: one per running worker; every wait races it
- CancellationRegistry: worker id -> handle, guarded by one lock

Stop never has to wait out a full poll interval: a sleeping
worker wakes as soon as its handle is signalled.

============================================================
"""

import asyncio
import logging
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)


class CancellationHandle:
    """Explicit stop signal for one worker loop."""

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def sleep(self, seconds: float) -> bool:
        """
        Wait up to `seconds` or until cancelled.

        Returns:
            True if the handle was cancelled during (or before) the wait
        """
        if self._event.is_set():
            return True
        if seconds <= 0:
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait(self) -> None:
        """Block until cancelled."""
        await self._event.wait()


class CancellationRegistry:
    """
    Map of worker id to cancellation handle.

    Insert, remove and signal all happen under one asyncio.Lock.
    """

    def __init__(self) -> None:
        self._handles: Dict[str, CancellationHandle] = {}
        self._lock = asyncio.Lock()

    async def register(self, worker_id: str) -> CancellationHandle:
        """Register a fresh handle, replacing (and signalling) any stale one."""
        async with self._lock:
            stale = self._handles.get(worker_id)
            if stale is not None:
                stale.cancel()
            handle = CancellationHandle(worker_id)
            self._handles[worker_id] = handle
            return handle

    async def cancel(self, worker_id: str) -> bool:
        """Signal and remove one handle. Returns False if none was registered."""
        async with self._lock:
            handle = self._handles.pop(worker_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    async def cancel_all(self) -> List[str]:
        """Signal and remove every handle atomically. Returns affected ids."""
        async with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
            for handle in handles:
                handle.cancel()
        if handles:
            logger.info(f"Cancelled all worker handles | count={len(handles)}")
        return [handle.worker_id for handle in handles]

    def get(self, worker_id: str) -> Optional[CancellationHandle]:
        return self._handles.get(worker_id)

    def __contains__(self, worker_id: str) -> bool:
        return worker_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)


__all__ = ["CancellationHandle", "CancellationRegistry"]
