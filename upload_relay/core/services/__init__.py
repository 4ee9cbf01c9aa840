"""
Core services implementing the session lifecycle.
"""

from .session_registry import SessionRegistry
from .completion_scheduler import CompletionScheduler
from .upload_relay import UploadRelay

__all__ = [
    "SessionRegistry",
    "CompletionScheduler",
    "UploadRelay",
]
