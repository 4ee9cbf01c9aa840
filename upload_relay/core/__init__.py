"""
Core of the upload relay: domain models, interfaces and the session lifecycle.

Nothing in this package touches the network or the disk directly; those side
effects sit behind the interfaces in ``core.interfaces``.
"""

from .domain.session import FileRecord, ForwardOutcome, Session, SessionState, UploadResult
from .domain.upload import IncomingFile, UploadRequest
from .exceptions import (
    FileTooLargeError, ForwardingError, IngestionError, InvalidSessionIdError,
    RelayError, StorageError, TooManyFilesError,
)

__all__ = [
    "FileRecord",
    "ForwardOutcome",
    "Session",
    "SessionState",
    "UploadResult",
    "IncomingFile",
    "UploadRequest",
    "FileTooLargeError",
    "ForwardingError",
    "IngestionError",
    "InvalidSessionIdError",
    "RelayError",
    "StorageError",
    "TooManyFilesError",
]
