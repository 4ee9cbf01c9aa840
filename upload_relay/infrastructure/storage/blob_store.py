"""
Disk-backed blob store.

Each session owns one directory under the storage root, named by the session
id. Files keep their original names; a repeated name within one session gets a
numeric suffix on disk so earlier bytes are never overwritten.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable

import aiofiles
import aiofiles.os
from loguru import logger

from ...core.domain.session import FileRecord
from ...core.domain.upload import IncomingFile, validate_session_id
from ...core.exceptions import StorageError
from ...core.interfaces.lifecycle import IComponent
from ...core.interfaces.relay import IBlobStore


def storage_name(filename: str) -> str:
    """Strip any client-side directory components from a filename."""
    name = filename.replace("\\", "/").rsplit("/", 1)[-1].strip()
    if name in ("", ".", ".."):
        return "upload"
    return name


class BlobStore(IBlobStore, IComponent):
    """Stores uploaded file parts under ``<root>/<session_id>/``."""

    def __init__(self, root: str, chunk_size: int = 1024 * 1024) -> None:
        self._root = Path(root)
        self._chunk_size = chunk_size
        self._running = False

    @property
    def name(self) -> str:
        return "BlobStore"

    @property
    def root(self) -> Path:
        return self._root

    async def start(self) -> None:
        await aiofiles.os.makedirs(self._root, exist_ok=True)
        self._running = True
        logger.info(f"Blob store ready at {self._root.resolve()}")

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        exists = self._root.is_dir()
        return {
            "healthy": self._running and exists,
            "status": "running" if self._running else "stopped",
            "details": {
                "root": str(self._root),
                "root_exists": exists,
            },
        }

    def session_path(self, session_id: str) -> str:
        return str(self._root / validate_session_id(session_id))

    async def store(self, session_id: str, incoming: IncomingFile) -> FileRecord:
        session_dir = Path(self.session_path(session_id))
        try:
            await aiofiles.os.makedirs(session_dir, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create session directory: {e}", session_id) from e

        target = await self._free_path(session_dir, storage_name(incoming.filename))
        written = 0
        try:
            async with aiofiles.open(target, "wb") as out:
                while True:
                    chunk = await incoming.source.read(self._chunk_size)
                    if not chunk:
                        break
                    await out.write(chunk)
                    written += len(chunk)
        except OSError as e:
            await self._discard(target)
            raise StorageError(f"Cannot write '{incoming.filename}': {e}", session_id) from e

        logger.bind(session_id=session_id).debug(
            f"Stored {incoming.filename} ({written} bytes) at {target}")

        return FileRecord(
            storage_path=str(target),
            original_name=incoming.filename,
            content_type=incoming.content_type,
            size=written,
        )

    def open(self, record: FileRecord) -> BinaryIO:
        return open(record.storage_path, "rb")

    async def delete_session(self, session_id: str) -> bool:
        session_dir = self.session_path(session_id)
        if not await aiofiles.os.path.isdir(session_dir):
            return False
        try:
            await asyncio.to_thread(shutil.rmtree, session_dir)
        except OSError as e:
            raise StorageError(f"Cannot delete session directory: {e}", session_id) from e
        return True

    async def delete_files(self, records: Iterable[FileRecord]) -> int:
        removed = 0
        for record in records:
            try:
                await aiofiles.os.remove(record.storage_path)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Cannot delete {record.storage_path}: {e}") from e
            removed += 1
        return removed

    async def _free_path(self, session_dir: Path, name: str) -> Path:
        candidate = session_dir / name
        stem, suffix = os.path.splitext(name)
        counter = 1
        while await aiofiles.os.path.exists(candidate):
            candidate = session_dir / f"{stem}-{counter}{suffix}"
            counter += 1
        return candidate

    @staticmethod
    async def _discard(path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove partial file {path}: {e}")
