"""
Contracts for the session lifecycle and forwarding engine.

These interfaces separate the in-process session bookkeeping from the disk
and network side effects so each can be replaced in tests.
"""

from abc import ABC, abstractmethod
from typing import (
    Any, AsyncContextManager, BinaryIO, Callable, Dict, Iterable, List,
    Optional, Tuple,
)

from ..domain.session import FileRecord, ForwardOutcome, Session
from ..domain.upload import IncomingFile

TimerCallback = Callable[[str, int], None]


class IBlobStore(ABC):
    """Persists file bytes under a per-session directory."""

    @abstractmethod
    async def store(self, session_id: str, incoming: IncomingFile) -> FileRecord:
        """
        Write one file part to the session directory.

        Returns:
            FileRecord pointing at the fully written bytes

        Raises:
            StorageError: If the directory or file cannot be written
        """
        pass

    @abstractmethod
    def open(self, record: FileRecord) -> BinaryIO:
        """Open a stored file for streaming."""
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """
        Delete every byte stored for a session.

        Returns:
            True if a directory was removed, False if none existed
        """
        pass

    @abstractmethod
    async def delete_files(self, records: Iterable[FileRecord]) -> int:
        """Delete individual stored files, returning how many were removed."""
        pass

    @abstractmethod
    def session_path(self, session_id: str) -> str:
        """Return the directory used for a session."""
        pass


class ISessionRegistry(ABC):
    """In-process mapping from session id to session state."""

    @abstractmethod
    def get_or_create(self, session_id: Optional[str] = None) -> Tuple[Session, bool]:
        """Return the session for ``session_id``, creating it when absent."""
        pass

    @abstractmethod
    def get(self, session_id: str) -> Optional[Session]:
        """Return the live session, or None."""
        pass

    @abstractmethod
    def append_files(self, session_id: str, files: Iterable[FileRecord]) -> bool:
        """Append records in call order. False if the session is gone."""
        pass

    @abstractmethod
    def merge_metadata(self, session_id: str, partial: Dict[str, Optional[str]]) -> bool:
        """Overwrite metadata with each non-empty value. False if the session is gone."""
        pass

    @abstractmethod
    def arm_timer(self, session_id: str, delay: float, on_fire: TimerCallback) -> Optional[int]:
        """
        Cancel any pending timer and schedule ``on_fire(session_id, generation)``.

        Returns:
            The timer generation, or None if the session is gone
        """
        pass

    @abstractmethod
    def remove(self, session_id: str, timer_generation: Optional[int] = None) -> Optional[Session]:
        """
        Atomically detach a session and cancel its timer.

        When ``timer_generation`` is given the session is only detached if its
        current timer generation matches.
        """
        pass

    @abstractmethod
    def session_lock(self, session_id: str) -> AsyncContextManager[None]:
        """Critical section serializing multi-step work on one session."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Number of live sessions."""
        pass

    @abstractmethod
    def list_sessions(self) -> List[Session]:
        """Live sessions, oldest first."""
        pass


class IWebhookClient(ABC):
    """Outbound HTTP delivery of an assembled multipart payload."""

    @abstractmethod
    async def deliver(self, files: List[Tuple[FileRecord, BinaryIO]],
                      fields: Dict[str, str], session_id: str) -> Any:
        """
        POST the files and fields as one multipart request.

        Raises:
            ForwardingError: On transport failure, timeout or non-2xx status
        """
        pass


class IForwardingEngine(ABC):
    """Assembles a claimed session and delivers it downstream exactly once."""

    @abstractmethod
    async def forward(self, session: Session) -> ForwardOutcome:
        """Deliver the session payload, then clean it up regardless of outcome."""
        pass
