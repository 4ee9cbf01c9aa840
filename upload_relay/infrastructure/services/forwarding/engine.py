"""
Forwarding engine.

Turns a claimed session into one downstream delivery and then deletes the
session's bytes. Cleanup is unconditional: a failed delivery is reported and
logged, never retried, and the files are removed either way.
"""

import time
from contextlib import ExitStack
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from loguru import logger

from ....core.domain.session import FileRecord, ForwardOutcome, Session
from ....core.exceptions import ForwardingError, StorageError
from ....core.interfaces.lifecycle import IComponent
from ....core.interfaces.relay import (
    IBlobStore, IForwardingEngine, ISessionRegistry, IWebhookClient,
)


class ForwardingEngine(IForwardingEngine, IComponent):
    """Delivers claimed sessions to the downstream webhook."""

    def __init__(
        self,
        blob_store: IBlobStore,
        webhook_client: IWebhookClient,
        registry: Optional[ISessionRegistry] = None,
    ) -> None:
        self._blob_store = blob_store
        self._webhook_client = webhook_client
        self._registry = registry
        # In-flight forwards per session id; a reused id can have more than one
        self._active: Dict[str, int] = {}
        self._running = False

        self._stats = {
            "forwards_attempted": 0,
            "forwards_succeeded": 0,
            "forwards_failed": 0,
            "files_forwarded": 0,
            "cleanup_errors": 0,
        }

    @property
    def name(self) -> str:
        return "ForwardingEngine"

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        return {
            "healthy": True,
            "status": "running" if self._running else "stopped",
            "details": {
                "active_forwards": sum(self._active.values()),
                "statistics": dict(self._stats),
            },
        }

    async def forward(self, session: Session) -> ForwardOutcome:
        session_id = session.session_id
        log = logger.bind(session_id=session_id)

        payload = session.snapshot()
        self._active[session_id] = self._active.get(session_id, 0) + 1
        self._stats["forwards_attempted"] += 1
        started = time.monotonic()

        log.info(f"Sending {payload.file_count} file(s) downstream")
        try:
            status = await self._deliver(payload)
        except ForwardingError as e:
            outcome = ForwardOutcome(
                session_id=session_id,
                success=False,
                files_forwarded=payload.file_count,
                status_code=e.response_status,
                error=e.message,
                duration=time.monotonic() - started,
            )
            self._stats["forwards_failed"] += 1
            log.error(f"Error processing session: {e.message}")
        except OSError as e:
            outcome = ForwardOutcome(
                session_id=session_id,
                success=False,
                files_forwarded=payload.file_count,
                error=f"Cannot read buffered file: {e}",
                duration=time.monotonic() - started,
            )
            self._stats["forwards_failed"] += 1
            log.error(outcome.error)
        else:
            outcome = ForwardOutcome(
                session_id=session_id,
                success=True,
                files_forwarded=payload.file_count,
                status_code=status,
                duration=time.monotonic() - started,
            )
            self._stats["forwards_succeeded"] += 1
            self._stats["files_forwarded"] += payload.file_count
            log.info(f"Downstream accepted session with HTTP {status} "
                     f"in {outcome.duration:.2f}s")
        finally:
            await self._cleanup(session)
            remaining = self._active[session_id] - 1
            if remaining:
                self._active[session_id] = remaining
            else:
                del self._active[session_id]

        return outcome

    async def _deliver(self, payload: Session) -> Optional[int]:
        with ExitStack() as stack:
            files: List[Tuple[FileRecord, BinaryIO]] = [
                (record, stack.enter_context(self._blob_store.open(record)))
                for record in payload.files
            ]
            result = await self._webhook_client.deliver(
                files, payload.metadata.non_empty(), payload.session_id)
        return getattr(result, "status", None)

    async def _cleanup(self, session: Session) -> None:
        session_id = session.session_id
        log = logger.bind(session_id=session_id)
        try:
            if self._registry is None:
                await self._release(session, self._active[session_id] > 1, log)
                return

            async with self._registry.session_lock(session_id):
                current = self._registry.get(session_id)
                if current is session:
                    self._registry.remove(session_id)
                    current = None

                shared = current is not None or self._active[session_id] > 1
                await self._release(session, shared, log)
        except StorageError as e:
            self._stats["cleanup_errors"] += 1
            log.error(f"Cleanup error: {e.message}")

    async def _release(self, session: Session, shared: bool, log: Any) -> None:
        """Delete the forwarded bytes, sparing files of another session on the same id."""
        if shared:
            await self._blob_store.delete_files(session.files)
            log.info(f"Deleted {session.file_count} forwarded file(s), "
                     "session id already reused")
        elif await self._blob_store.delete_session(session.session_id):
            log.info("Deleted session directory")
