"""
Domain models for upload sessions and forwarding outcomes.
"""

from .session import (
    METADATA_FIELDS, FileRecord, ForwardOutcome, Session, SessionMetadata,
    SessionState, UploadResult,
)
from .upload import AsyncReadable, IncomingFile, UploadRequest, validate_session_id

__all__ = [
    "METADATA_FIELDS",
    "AsyncReadable",
    "FileRecord",
    "ForwardOutcome",
    "IncomingFile",
    "Session",
    "SessionMetadata",
    "SessionState",
    "UploadRequest",
    "UploadResult",
    "validate_session_id",
]
