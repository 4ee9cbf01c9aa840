"""
On-disk storage for buffered session files.
"""

from .blob_store import BlobStore, storage_name
from .reaper import StartupReaper, sweep

__all__ = [
    "BlobStore",
    "StartupReaper",
    "storage_name",
    "sweep",
]
