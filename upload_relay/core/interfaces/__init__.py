"""
Core interfaces for the relay components.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .relay import (
    IBlobStore, ISessionRegistry, IWebhookClient, IForwardingEngine, TimerCallback,
)

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IBlobStore",
    "ISessionRegistry",
    "IWebhookClient",
    "IForwardingEngine",
    "TimerCallback",
]
