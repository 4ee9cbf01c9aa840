"""
Forwarding of completed sessions to the downstream webhook.
"""

from .engine import ForwardingEngine

__all__ = [
    "ForwardingEngine",
]
