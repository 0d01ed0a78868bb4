"""
Lifecycle - Lifecycle Controller.

============================================================
RESPONSIBILITY
============================================================
Process-wide service state machine.

- Builds a fresh Engine on every start, disposes it on stop
- Serializes start / stop / pause / resume under one lock
- Publishes the state to the shared SystemState object
- Records transitions and notifies listeners

============================================================
CRITICAL CONSTRAINTS
============================================================
- start while not STOPPED is a logged no-op (never a second Engine)
- stop while STOPPED is a no-op
- stop force-stops every worker BEFORE the Engine goes down
- A failed start ends in ERROR with the partial Engine disposed;
  stop brings ERROR back to STOPPED

============================================================
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from core.config import HarnessConfig
from core.exceptions import LifecycleError
from core.system_state import SystemState

from .engine import Engine
from .models import HealthStatus, ServiceState, StateTransition, VALID_TRANSITIONS


logger = logging.getLogger(__name__)

EngineFactory = Callable[[], Engine]
TransitionListener = Callable[[StateTransition], Awaitable[None]]


class LifecycleController:
    """
    Owner of the service state and the current Engine.

    Usage:
        controller = LifecycleController(config)
        await controller.start()
        ...
        await controller.stop()
    """

    def __init__(
        self,
        config: Optional[HarnessConfig] = None,
        system_state: Optional[SystemState] = None,
        engine_factory: Optional[EngineFactory] = None,
        max_history: int = 100,
    ) -> None:
        self._config = config or HarnessConfig()
        self._system_state = system_state or SystemState()
        self._engine_factory = engine_factory or self._default_engine
        self._max_history = max_history

        self._state = ServiceState.STOPPED
        self._engine: Optional[Engine] = None
        self._lock = asyncio.Lock()
        self._history: List[StateTransition] = []
        self._listeners: List[TransitionListener] = []
        self._logger = logger

    def _default_engine(self) -> Engine:
        return Engine(self._config, self._system_state)

    # --------------------------------------------------------
    # PROPERTIES
    # --------------------------------------------------------

    @property
    def state(self) -> ServiceState:
        return self._state

    @property
    def engine(self) -> Optional[Engine]:
        return self._engine

    @property
    def system_state(self) -> SystemState:
        return self._system_state

    def get_history(self, limit: int = 10) -> List[StateTransition]:
        return self._history[-limit:]

    def register_listener(self, listener: TransitionListener) -> None:
        self._listeners.append(listener)

    def unregister_listener(self, listener: TransitionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # --------------------------------------------------------
    # START
    # --------------------------------------------------------

    async def start(self) -> None:
        """
        STOPPED -> STARTING -> STARTED.

        Raises:
            Exception: Whatever made the Engine fail to build or
                start; the controller is left in ERROR
        """
        async with self._lock:
            if self._state != ServiceState.STOPPED:
                self._logger.info(f"Start ignored | state={self._state.value}")
                return

            await self._transition(ServiceState.STARTING, "start requested")
            engine: Optional[Engine] = None
            try:
                engine = self._engine_factory()
                await engine.start()
            except Exception as e:
                self._logger.error(f"Engine start failed | error={e}", exc_info=True)
                if engine is not None:
                    await self._dispose_engine(engine)
                self._engine = None
                await self._transition(ServiceState.ERROR, f"start failed: {e}")
                raise

            self._engine = engine
            await self._transition(ServiceState.STARTED, "engine started")

    # --------------------------------------------------------
    # STOP
    # --------------------------------------------------------

    async def stop(self) -> None:
        """
        -> STOPPING -> STOPPED. No-op when already STOPPED.

        Engine stop errors are logged; the Engine is dropped anyway.
        """
        async with self._lock:
            if self._state == ServiceState.STOPPED:
                self._logger.info("Stop ignored | state=stopped")
                return

            await self._transition(ServiceState.STOPPING, "stop requested")
            engine = self._engine
            self._engine = None

            if engine is not None:
                try:
                    await engine.worker_pool.force_stop_all()
                except Exception as e:
                    self._logger.error(f"Force-stop of workers failed | error={e}", exc_info=True)
                try:
                    await engine.stop()
                except Exception as e:
                    self._logger.error(f"Engine stop failed | error={e}", exc_info=True)
                await self._dispose_engine(engine)

            await self._transition(ServiceState.STOPPED, "engine stopped")

    # --------------------------------------------------------
    # PAUSE / RESUME
    # --------------------------------------------------------

    async def pause(self) -> None:
        """
        STARTED -> PAUSING -> PAUSED. Running workers end up PAUSED.

        Raises:
            LifecycleError: If not STARTED
        """
        async with self._lock:
            self._require(ServiceState.STARTED, "pause")
            await self._transition(ServiceState.PAUSING, "pause requested")
            try:
                paused = await self._engine.worker_pool.pause_all_running()
            except Exception as e:
                self._logger.error(f"Pause failed | error={e}", exc_info=True)
                await self._transition(ServiceState.ERROR, f"pause failed: {e}")
                raise
            await self._transition(ServiceState.PAUSED, f"paused {len(paused)} workers")

    async def resume(self) -> None:
        """
        PAUSED -> RESUMING -> STARTED. PAUSED workers are restarted.

        Raises:
            LifecycleError: If not PAUSED
        """
        async with self._lock:
            self._require(ServiceState.PAUSED, "resume")
            await self._transition(ServiceState.RESUMING, "resume requested")
            try:
                resumed = await self._engine.worker_pool.resume_paused()
            except Exception as e:
                self._logger.error(f"Resume failed | error={e}", exc_info=True)
                await self._transition(ServiceState.ERROR, f"resume failed: {e}")
                raise
            await self._transition(ServiceState.STARTED, f"resumed {len(resumed)} workers")

    # --------------------------------------------------------
    # HEALTH
    # --------------------------------------------------------

    def get_health(self) -> HealthStatus:
        """
        Non-blocking snapshot.

        Healthy means the Engine is healthy and the service is not
        paused. Without an Engine, healthy only while STOPPED.
        """
        state = self._state
        engine = self._engine
        paused = state == ServiceState.PAUSED

        if engine is None:
            return HealthStatus(
                state=state,
                is_healthy=state == ServiceState.STOPPED,
                is_paused=paused,
                message="no engine",
            )

        engine_healthy = engine.is_healthy()
        return HealthStatus(
            state=state,
            is_healthy=engine_healthy and not paused,
            is_paused=paused,
            engine_healthy=engine_healthy,
            message="" if engine_healthy else "engine degraded",
            metrics=engine.get_metrics(),
        )

    # --------------------------------------------------------
    # INTERNAL
    # --------------------------------------------------------

    def _require(self, expected: ServiceState, operation: str) -> None:
        if self._state != expected or self._engine is None:
            raise LifecycleError(
                f"Cannot {operation} while {self._state.value}",
                context={"operation": operation, "state": self._state.value},
            )

    async def _transition(self, target: ServiceState, reason: str) -> StateTransition:
        """Apply a transition. Caller holds the lock."""
        if target not in VALID_TRANSITIONS[self._state]:
            raise LifecycleError(
                f"Invalid lifecycle transition: {self._state.value} -> {target.value}",
                context={"from_state": self._state.value, "to_state": target.value},
            )

        transition = StateTransition(from_state=self._state, to_state=target, reason=reason)
        self._state = target
        self._history.append(transition)
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

        self._system_state.update(target.value, paused=target == ServiceState.PAUSED)
        self._logger.info(
            f"Lifecycle transition: {transition.from_state.value} -> {target.value} | reason={reason}"
        )

        for listener in list(self._listeners):
            try:
                await listener(transition)
            except Exception as e:
                self._logger.error(f"Lifecycle listener error: {e}", exc_info=True)
        return transition

    async def _dispose_engine(self, engine: Engine) -> None:
        try:
            await engine.dispose()
        except Exception as e:
            self._logger.error(f"Engine dispose failed | error={e}", exc_info=True)


__all__ = ["LifecycleController"]
