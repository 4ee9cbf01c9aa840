"""
Startup sweep of stale session directories.

Sessions do not survive a restart, so their directories are orphaned once the
process exits. The reaper runs once before the relay accepts traffic and
deletes every session directory older than the retention horizon.
"""

import asyncio
import os
import shutil
import time
from typing import List, Optional

from loguru import logger


async def sweep(root_dir: str, max_age: float, now: Optional[float] = None) -> List[str]:
    """
    Delete immediate subdirectories of ``root_dir`` older than ``max_age``.

    Args:
        root_dir: Storage root holding one directory per session
        max_age: Retention horizon in seconds, compared to the directory mtime
        now: Reference timestamp (defaults to the current time)

    Returns:
        Names of the directories that were removed
    """
    now = time.time() if now is None else now
    try:
        with os.scandir(root_dir) as it:
            entries = list(it)
    except FileNotFoundError:
        logger.debug(f"Nothing to sweep, {root_dir} does not exist")
        return []
    except NotADirectoryError:
        logger.warning(f"Nothing to sweep, {root_dir} is not a directory")
        return []

    removed: List[str] = []
    for entry in entries:
        try:
            if not entry.is_dir(follow_symlinks=False):
                continue
            age = now - entry.stat(follow_symlinks=False).st_mtime
            if age <= max_age:
                continue
            await asyncio.to_thread(shutil.rmtree, entry.path)
        except OSError as e:
            logger.error(f"Failed to reap session directory {entry.name}: {e}")
            continue

        removed.append(entry.name)
        logger.info(f"Cleaned up old session: {entry.name} (age {age:.0f}s)")

    return removed


class StartupReaper:
    """One-shot sweep bound to a storage root and retention horizon."""

    def __init__(self, root_dir: str, max_age: float = 3600.0) -> None:
        self._root_dir = root_dir
        self._max_age = max_age
        self.last_removed: List[str] = []

    async def run(self) -> List[str]:
        self.last_removed = await sweep(self._root_dir, self._max_age)
        if self.last_removed:
            logger.info(f"Startup reaper removed {len(self.last_removed)} stale session(s)")
        return self.last_removed
