"""
Inactivity-driven session completion.

Each buffering request re-arms a fire-once timer on the registry. When a timer
fires, the scheduler claims the session through ``remove`` and hands it to the
forwarding engine in a background task. There is no caller left to report to,
so failures surface only through the log.
"""

import asyncio
from typing import Any, Dict, Optional, Set

from loguru import logger

from ..domain.session import ForwardOutcome
from ..interfaces.lifecycle import IComponent
from ..interfaces.relay import IForwardingEngine, ISessionRegistry


class CompletionScheduler(IComponent):
    """Arms per-session inactivity timers and forwards sessions that go quiet."""

    def __init__(
        self,
        registry: ISessionRegistry,
        forwarding_engine: IForwardingEngine,
        inactivity_timeout: float = 300.0,
    ) -> None:
        if inactivity_timeout <= 0:
            raise ValueError(f"Inactivity timeout must be positive, got {inactivity_timeout}")

        self._registry = registry
        self._forwarding_engine = forwarding_engine
        self._timeout = inactivity_timeout
        self._tasks: Set["asyncio.Task[Optional[ForwardOutcome]]"] = set()
        self._running = False

        self._stats = {
            "timers_armed": 0,
            "timers_fired": 0,
            "stale_fires": 0,
            "forwards_succeeded": 0,
            "forwards_failed": 0,
        }

    @property
    def name(self) -> str:
        return "CompletionScheduler"

    @property
    def inactivity_timeout(self) -> float:
        return self._timeout

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        self._running = True
        logger.info(f"Completion scheduler started (inactivity timeout {self._timeout}s)")

    async def stop(self) -> None:
        """Stop arming timers and wait for forwards that already started."""
        self._running = False
        if self._tasks:
            logger.info(f"Waiting for {len(self._tasks)} in-flight forward(s)")
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        logger.info("Completion scheduler stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            "healthy": self._running,
            "status": "running" if self._running else "stopped",
            "details": {
                "inactivity_timeout": self._timeout,
                "in_flight_forwards": self.in_flight,
                "statistics": dict(self._stats),
            },
        }

    def schedule(self, session_id: str, delay: Optional[float] = None) -> Optional[int]:
        """
        (Re)arm the inactivity timer of a session.

        Returns:
            Timer generation, or None if the session no longer exists
        """
        generation = self._registry.arm_timer(
            session_id, self._timeout if delay is None else delay, self._on_timer)
        if generation is not None:
            self._stats["timers_armed"] += 1
        return generation

    async def complete(self, session_id: str,
                       timer_generation: Optional[int] = None) -> Optional[ForwardOutcome]:
        """
        Claim a session and forward it.

        Returns:
            The forwarding outcome, or None if another path already claimed it
        """
        async with self._registry.session_lock(session_id):
            session = self._registry.remove(session_id, timer_generation=timer_generation)

        if session is None:
            return None
        return await self._forwarding_engine.forward(session)

    def _on_timer(self, session_id: str, generation: int) -> None:
        self._stats["timers_fired"] += 1
        task = asyncio.ensure_future(self._fire(session_id, generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fire(self, session_id: str, generation: int) -> Optional[ForwardOutcome]:
        log = logger.bind(session_id=session_id)
        log.info("Session inactivity timeout reached, forwarding")

        try:
            outcome = await self.complete(session_id, timer_generation=generation)
        except Exception as e:
            self._stats["forwards_failed"] += 1
            log.exception(f"Timer-triggered forward crashed: {e}")
            return None

        if outcome is None:
            self._stats["stale_fires"] += 1
            log.debug("Timer fired for a session that was already claimed or re-armed")
        elif outcome.success:
            self._stats["forwards_succeeded"] += 1
        else:
            self._stats["forwards_failed"] += 1
            log.error(
                f"Timer-triggered forward failed for {outcome.files_forwarded} file(s): "
                f"{outcome.error}")
        return outcome
