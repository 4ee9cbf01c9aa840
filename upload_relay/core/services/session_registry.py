"""
In-process session registry.

The registry owns every Session and is the single serialization point for
claiming a session for forwarding: ``remove`` detaches a session atomically and
returns it at most once, so the inactivity timer and an explicit completion
signal can never both forward the same payload.
"""

import asyncio
import threading
import time
import uuid
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Tuple

from loguru import logger

from ..domain.session import FileRecord, Session, SessionState
from ..interfaces.lifecycle import IComponent
from ..interfaces.relay import ISessionRegistry, TimerCallback


class SessionRegistry(ISessionRegistry, IComponent):
    """
    Session registry backed by an ordered dict.

    Map mutations are guarded by a thread lock and never await, so each public
    operation is atomic on the event loop. Multi-step work on one session
    (write bytes, then record them) is serialized with ``session_lock``, a
    per-id asyncio lock that does not block other sessions.
    """

    def __init__(self) -> None:
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._mutex = threading.RLock()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
        self._running = False

        self._stats = {
            "sessions_created": 0,
            "sessions_removed": 0,
            "late_arrivals": 0,
        }

    @property
    def name(self) -> str:
        return "SessionRegistry"

    async def start(self) -> None:
        self._running = True
        logger.info("Session registry started")

    async def stop(self) -> None:
        """Cancel every pending timer and drop all sessions."""
        with self._mutex:
            for session in self._sessions.values():
                self._cancel_timer(session)
            dropped = len(self._sessions)
            self._sessions.clear()
        self._running = False
        if dropped:
            logger.warning(f"Session registry stopped with {dropped} unfinished sessions")
        else:
            logger.info("Session registry stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            "healthy": self._running,
            "status": "running" if self._running else "stopped",
            "details": {
                "active_sessions": self.size(),
                "statistics": dict(self._stats),
            },
        }

    def get_or_create(self, session_id: Optional[str] = None) -> Tuple[Session, bool]:
        with self._mutex:
            if session_id is None:
                session_id = self.new_session_id()
            session = self._sessions.get(session_id)
            if session is not None:
                return session, False

            session = Session(session_id=session_id)
            self._sessions[session_id] = session
            self._stats["sessions_created"] += 1

        logger.bind(session_id=session_id).debug("Created session")
        return session, True

    def get(self, session_id: str) -> Optional[Session]:
        with self._mutex:
            return self._sessions.get(session_id)

    def new_session_id(self) -> str:
        """Mint an id that is not held by any live session."""
        with self._mutex:
            while True:
                candidate = str(uuid.uuid4())
                if candidate not in self._sessions:
                    return candidate

    def append_files(self, session_id: str, files: Iterable[FileRecord]) -> bool:
        records = list(files)
        with self._mutex:
            session = self._live(session_id)
            if session is None:
                self._stats["late_arrivals"] += 1
                logger.bind(session_id=session_id).warning(
                    f"Dropping {len(records)} late file record(s), session no longer exists")
                return False

            self._cancel_timer(session)
            session.files.extend(records)
            session.updated_at = time.time()
            return True

    def merge_metadata(self, session_id: str, partial: Dict[str, Optional[str]]) -> bool:
        with self._mutex:
            session = self._live(session_id)
            if session is None:
                logger.bind(session_id=session_id).warning(
                    "Ignoring metadata for a session that no longer exists")
                return False

            self._cancel_timer(session)
            session.metadata.merge(partial)
            session.updated_at = time.time()
            return True

    def arm_timer(self, session_id: str, delay: float, on_fire: TimerCallback) -> Optional[int]:
        loop = asyncio.get_running_loop()
        with self._mutex:
            session = self._live(session_id)
            if session is None:
                return None

            self._cancel_timer(session)
            generation = session.timer_generation
            session.pending_timer = loop.call_later(delay, on_fire, session_id, generation)
            return generation

    def cancel_timer(self, session_id: str) -> bool:
        """Cancel a pending timer without touching files or metadata."""
        with self._mutex:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            return self._cancel_timer(session)

    def remove(self, session_id: str, timer_generation: Optional[int] = None) -> Optional[Session]:
        with self._mutex:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if timer_generation is not None and session.timer_generation != timer_generation:
                # A newer request re-armed the timer after this one fired
                return None

            del self._sessions[session_id]
            self._cancel_timer(session)
            session.state = SessionState.COMPLETING
            self._stats["sessions_removed"] += 1

        logger.bind(session_id=session_id).debug(
            f"Claimed session with {session.file_count} file(s)")
        return session

    @asynccontextmanager
    async def session_lock(self, session_id: str) -> AsyncIterator[None]:
        with self._mutex:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = self._locks[session_id] = asyncio.Lock()
            self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            with self._mutex:
                remaining = self._lock_users[session_id] - 1
                if remaining:
                    self._lock_users[session_id] = remaining
                else:
                    del self._lock_users[session_id]
                    del self._locks[session_id]

    def size(self) -> int:
        with self._mutex:
            return len(self._sessions)

    def list_sessions(self) -> List[Session]:
        with self._mutex:
            return list(self._sessions.values())

    def __contains__(self, session_id: object) -> bool:
        with self._mutex:
            return session_id in self._sessions

    def _live(self, session_id: str) -> Optional[Session]:
        session = self._sessions.get(session_id)
        if session is None or session.state is not SessionState.ACTIVE:
            return None
        return session

    @staticmethod
    def _cancel_timer(session: Session) -> bool:
        """Cancel the pending timer and invalidate callbacks already in flight."""
        session.timer_generation += 1
        if session.pending_timer is None:
            return False
        session.pending_timer.cancel()
        session.pending_timer = None
        return True
