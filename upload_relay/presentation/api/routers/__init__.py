"""
API routers.
"""

from . import health, upload

__all__ = [
    "health",
    "upload",
]
