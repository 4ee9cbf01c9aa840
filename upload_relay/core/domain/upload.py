"""
Transport-neutral view of one incoming upload request.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from ..exceptions import InvalidSessionIdError


class AsyncReadable(Protocol):
    """Anything that yields bytes via ``await read(size)``."""

    async def read(self, size: int = -1) -> bytes:
        ...


@dataclass
class IncomingFile:
    """A decoded file part waiting to be persisted."""

    filename: str
    content_type: str
    size: int
    source: AsyncReadable


@dataclass
class UploadRequest:
    """Decoded form of one upload request."""

    files: List[IncomingFile] = field(default_factory=list)
    session_id: Optional[str] = None
    is_last: bool = False
    metadata: Dict[str, Optional[str]] = field(default_factory=dict)

    def describe(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "files": [f.filename for f in self.files],
            "is_last": self.is_last,
        }


SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


def validate_session_id(session_id: str) -> str:
    """Return ``session_id`` if it is safe to use as a directory name."""
    if not SESSION_ID_PATTERN.match(session_id) or session_id in (".", ".."):
        raise InvalidSessionIdError(session_id)
    return session_id
