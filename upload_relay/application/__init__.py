"""
Application layer: dependency wiring and startup sequencing.
"""

from .container import Container, IContainer
from .startup import ApplicationStartup

__all__ = [
    "Container",
    "IContainer",
    "ApplicationStartup",
]
