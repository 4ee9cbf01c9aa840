"""
Exception hierarchy for the upload relay.

Ingestion errors are the caller's fault and map to client-error responses,
storage errors are local I/O failures, and forwarding errors describe a failed
delivery to the downstream webhook.
"""

from typing import Optional


class RelayError(Exception):
    """Base class for all relay errors."""

    status_code = 500

    def __init__(self, message: str, session_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.session_id = session_id


class IngestionError(RelayError):
    """An upload request was rejected before any session mutation."""

    status_code = 400


class FileTooLargeError(IngestionError):
    """A file part exceeds the per-file size ceiling."""

    def __init__(self, filename: str, size: int, limit: int,
                 session_id: Optional[str] = None) -> None:
        super().__init__(
            f"File '{filename}' is {size} bytes, limit is {limit} bytes",
            session_id,
        )
        self.filename = filename
        self.size = size
        self.limit = limit


class TooManyFilesError(IngestionError):
    """Accepting the request would push the session over its file-count ceiling."""

    def __init__(self, current: int, incoming: int, limit: int,
                 session_id: Optional[str] = None) -> None:
        super().__init__(
            f"Session holds {current} files, request adds {incoming}, limit is {limit}",
            session_id,
        )
        self.current = current
        self.incoming = incoming
        self.limit = limit


class InvalidSessionIdError(IngestionError):
    """The supplied session id cannot be used as a storage directory name."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Invalid session id: {session_id!r}")


class StorageError(RelayError):
    """Bytes could not be written to, or removed from, the blob store."""


class ForwardingError(RelayError):
    """Delivery to the downstream webhook failed."""

    status_code = 502

    def __init__(self, message: str, session_id: Optional[str] = None,
                 response_status: Optional[int] = None,
                 response_body: Optional[str] = None) -> None:
        super().__init__(message, session_id)
        self.response_status = response_status
        self.response_body = response_body
