"""
Test doubles shared across the relay tests.
"""

import asyncio
import io
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from upload_relay.core.domain.session import FileRecord
from upload_relay.core.domain.upload import IncomingFile
from upload_relay.core.exceptions import ForwardingError
from upload_relay.core.interfaces.relay import IWebhookClient


class BytesReader:
    """Async reader over in-memory bytes."""

    def __init__(self, data: bytes) -> None:
        self._buffer = io.BytesIO(data)

    async def read(self, size: int = -1) -> bytes:
        return self._buffer.read(size)


def incoming(name: str, data: bytes = b"payload", content_type: str = "audio/mpeg") -> IncomingFile:
    return IncomingFile(filename=name, content_type=content_type, size=len(data),
                        source=BytesReader(data))


class Delivery:
    def __init__(self, session_id: str, files: List[Tuple[str, str, bytes]],
                 fields: Dict[str, str]) -> None:
        self.session_id = session_id
        self.files = files
        self.fields = fields

    @property
    def names(self) -> List[str]:
        return [name for name, _, _ in self.files]


class RecordingWebhookClient(IWebhookClient):
    """Webhook stand-in that reads the streamed files and records the delivery."""

    def __init__(self, fail_with: Optional[str] = None, delay: float = 0.0) -> None:
        self.fail_with = fail_with
        self.delay = delay
        self.deliveries: List[Delivery] = []

    async def deliver(self, files: List[Tuple[FileRecord, BinaryIO]],
                      fields: Dict[str, str], session_id: str) -> Any:
        contents = [(record.original_name, record.content_type, handle.read())
                    for record, handle in files]
        self.deliveries.append(Delivery(session_id, contents, dict(fields)))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with:
            raise ForwardingError(self.fail_with, session_id, response_status=500)
        return type("Result", (), {"status": 200})()


