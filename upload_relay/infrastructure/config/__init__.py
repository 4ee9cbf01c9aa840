"""
Configuration loading and validation for the relay.
"""

from .loader import ConfigLoader
from .models import (
    DownstreamConfig, LimitsConfig, LoggingConfig, RelayConfig, ServerConfig,
    SessionConfig, StorageConfig,
)

__all__ = [
    "ConfigLoader",
    "DownstreamConfig",
    "LimitsConfig",
    "LoggingConfig",
    "RelayConfig",
    "ServerConfig",
    "SessionConfig",
    "StorageConfig",
]
