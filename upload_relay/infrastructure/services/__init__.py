"""
Infrastructure services that perform disk and network side effects.
"""

from .forwarding import ForwardingEngine

__all__ = [
    "ForwardingEngine",
]
