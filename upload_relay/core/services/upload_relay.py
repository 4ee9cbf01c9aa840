"""
Ingress decision logic for the upload relay.

One call to ``handle_upload`` is one incoming request. The relay validates the
request against the ingestion ceilings, persists and records the files under
the session lock, and then either claims the session for immediate forwarding
(completion signal) or re-arms its inactivity timer.
"""

import time
from typing import Any, Dict, List, Optional

from loguru import logger

from ..domain.session import FileRecord, Session, UploadResult
from ..domain.upload import UploadRequest, validate_session_id
from ..exceptions import FileTooLargeError, IngestionError, StorageError, TooManyFilesError
from ..interfaces.lifecycle import IComponent
from ..interfaces.relay import IBlobStore, IForwardingEngine, ISessionRegistry
from .completion_scheduler import CompletionScheduler

MESSAGE_FORWARDED = "Files sent to downstream webhook"
MESSAGE_FORWARD_FAILED = "Forwarding to downstream webhook failed"
MESSAGE_BUFFERED = "Files buffered. Send is_last=true to trigger processing."


class UploadRelay(IComponent):
    """Drives the registry, blob store, scheduler and forwarding engine per request."""

    def __init__(
        self,
        registry: ISessionRegistry,
        blob_store: IBlobStore,
        scheduler: CompletionScheduler,
        forwarding_engine: IForwardingEngine,
        max_file_size: int = 500 * 1024 * 1024,
        max_files_per_session: int = 50,
    ) -> None:
        self._registry = registry
        self._blob_store = blob_store
        self._scheduler = scheduler
        self._forwarding_engine = forwarding_engine
        self._max_file_size = max_file_size
        self._max_files = max_files_per_session
        self._started_at = time.monotonic()

        self._stats = {
            "requests": 0,
            "rejected": 0,
            "files_accepted": 0,
            "bytes_accepted": 0,
        }

    @property
    def name(self) -> str:
        return "UploadRelay"

    async def start(self) -> None:
        self._started_at = time.monotonic()

    async def stop(self) -> None:
        pass

    async def check_health(self) -> Dict[str, Any]:
        return {
            "healthy": True,
            "status": "running",
            "details": {
                "max_file_size": self._max_file_size,
                "max_files_per_session": self._max_files,
                "statistics": dict(self._stats),
            },
        }

    def health(self) -> Dict[str, Any]:
        """Public health report."""
        return {
            "status": "ok",
            "activeSessions": self._registry.size(),
            "uptime": round(time.monotonic() - self._started_at, 3),
        }

    async def handle_upload(self, request: UploadRequest) -> UploadResult:
        """
        Accept one upload request.

        Raises:
            IngestionError: If the request violates a ceiling; nothing is stored
            StorageError: If a file cannot be persisted; files written before
                the failure stay recorded in the session
        """
        self._stats["requests"] += 1
        session_id = request.session_id or self._registry.new_session_id()
        log = logger.bind(session_id=session_id)

        try:
            validate_session_id(session_id)
            self._check_file_sizes(request, session_id)
        except IngestionError:
            self._stats["rejected"] += 1
            raise

        log.info(f"Received {len(request.files)} files. Is last: {request.is_last}")

        claimed: Optional[Session] = None
        async with self._registry.session_lock(session_id):
            existing = self._registry.get(session_id)
            current = existing.file_count if existing is not None else 0
            if current + len(request.files) > self._max_files:
                self._stats["rejected"] += 1
                raise TooManyFilesError(current, len(request.files), self._max_files, session_id)

            session, is_new = self._registry.get_or_create(session_id)
            if is_new:
                log.debug("Initialized new session")

            records: List[FileRecord] = []
            failures: List[StorageError] = []
            for incoming in request.files:
                try:
                    records.append(await self._blob_store.store(session_id, incoming))
                except StorageError as e:
                    failures.append(e)
                    log.error(f"Failed to store {incoming.filename}: {e.message}")

            self._registry.append_files(session_id, records)
            self._registry.merge_metadata(session_id, request.metadata)
            self._stats["files_accepted"] += len(records)
            self._stats["bytes_accepted"] += sum(r.size for r in records)

            total = session.file_count
            log.info(f"Total files in session: {total}")

            if failures:
                # Stored siblings stay recorded; the session keeps buffering
                self._scheduler.schedule(session_id)
                raise StorageError(
                    f"{len(failures)} of {len(request.files)} files could not be stored: "
                    + "; ".join(e.message for e in failures),
                    session_id,
                )

            if request.is_last:
                claimed = self._registry.remove(session_id)
            else:
                self._scheduler.schedule(session_id)

        if claimed is None:
            return UploadResult(
                session_id=session_id,
                files_received=total,
                completed=False,
                message=MESSAGE_BUFFERED,
            )

        log.info("Processing session (is_last=true)")
        outcome = await self._forwarding_engine.forward(claimed)
        return UploadResult(
            session_id=session_id,
            files_received=outcome.files_forwarded,
            completed=True,
            message=MESSAGE_FORWARDED if outcome.success else MESSAGE_FORWARD_FAILED,
            outcome=outcome,
        )

    def _check_file_sizes(self, request: UploadRequest, session_id: str) -> None:
        for incoming in request.files:
            if incoming.size > self._max_file_size:
                raise FileTooLargeError(incoming.filename, incoming.size,
                                        self._max_file_size, session_id)
