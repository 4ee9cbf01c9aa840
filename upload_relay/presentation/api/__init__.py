"""
REST API for the relay.
"""

from .app import create_app
from .dependencies import get_component, get_config, get_container

__all__ = [
    "create_app",
    "get_component",
    "get_config",
    "get_container",
]
