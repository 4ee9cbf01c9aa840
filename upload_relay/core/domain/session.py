"""
Session domain models.

A session is one logical multi-file upload. It accumulates FileRecords in
arrival order plus a few metadata fields until it is claimed for forwarding.
"""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class SessionState(Enum):
    """Lifecycle state of a session."""
    ACTIVE = "active"
    COMPLETING = "completing"


# Form and payload field names mapped to their camelCase response names.
METADATA_FIELDS = {
    "context": "context",
    "force_theme": "forceTheme",
    "force_type": "forceType",
}


@dataclass(frozen=True)
class FileRecord:
    """One accepted file part, already persisted to the blob store."""

    storage_path: str
    original_name: str
    content_type: str
    size: int


@dataclass
class SessionMetadata:
    """Optional string fields merged across requests, last non-empty value wins."""

    context: str = ""
    force_theme: str = ""
    force_type: str = ""

    def merge(self, partial: Dict[str, Optional[str]]) -> None:
        for name in METADATA_FIELDS:
            value = partial.get(name)
            if value:
                setattr(self, name, value)

    def non_empty(self) -> Dict[str, str]:
        """Return the populated fields keyed by their wire name."""
        return {name: getattr(self, name) for name in METADATA_FIELDS if getattr(self, name)}

    def to_dict(self) -> Dict[str, str]:
        return {alias: getattr(self, name) for name, alias in METADATA_FIELDS.items()}


@dataclass
class Session:
    """In-memory state of one buffering session."""

    session_id: str
    files: List[FileRecord] = field(default_factory=list)
    metadata: SessionMetadata = field(default_factory=SessionMetadata)
    state: SessionState = SessionState.ACTIVE
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    # Timer bookkeeping, owned by the registry
    pending_timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)
    timer_generation: int = 0

    @property
    def file_count(self) -> int:
        return len(self.files)

    @property
    def total_bytes(self) -> int:
        return sum(record.size for record in self.files)

    def snapshot(self) -> "Session":
        """Copy the payload so forwarding never shares lists with the registry."""
        return Session(
            session_id=self.session_id,
            files=list(self.files),
            metadata=SessionMetadata(**vars(self.metadata)),
            state=self.state,
            created_at=self.created_at,
            updated_at=self.updated_at,
            timer_generation=self.timer_generation,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "state": self.state.value,
            "files": [record.original_name for record in self.files],
            "total_bytes": self.total_bytes,
            "metadata": self.metadata.to_dict(),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class ForwardOutcome:
    """Result of one forwarding attempt."""

    session_id: str
    success: bool
    files_forwarded: int
    status_code: Optional[int] = None
    error: Optional[str] = None
    duration: float = 0.0


@dataclass(frozen=True)
class UploadResult:
    """What the ingress returns for one accepted upload request."""

    session_id: str
    files_received: int
    completed: bool
    message: str
    outcome: Optional[ForwardOutcome] = None

    @property
    def success(self) -> bool:
        return self.outcome is None or self.outcome.success

    def to_response(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": self.success,
            "sessionId": self.session_id,
            "filesReceived": self.files_received,
            "message": self.message,
        }
        if self.outcome is not None and not self.outcome.success:
            body["error"] = self.outcome.error
        return body
