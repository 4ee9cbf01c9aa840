"""
Upload Relay - buffers progressive multi-file uploads per session and forwards
each complete set to a downstream webhook as one multipart request.
"""

__version__ = "0.1.0"

from .application.container import Container, IContainer
from .application.startup import ApplicationStartup
from .core.domain.session import FileRecord, ForwardOutcome, Session, UploadResult
from .core.services.completion_scheduler import CompletionScheduler
from .core.services.session_registry import SessionRegistry
from .core.services.upload_relay import UploadRelay
from .infrastructure.config.models import RelayConfig

__all__ = [
    "ApplicationStartup",
    "CompletionScheduler",
    "Container",
    "FileRecord",
    "ForwardOutcome",
    "IContainer",
    "RelayConfig",
    "Session",
    "SessionRegistry",
    "UploadRelay",
    "UploadResult",
]
