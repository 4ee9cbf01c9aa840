"""
Outbound clients used by the relay.
"""

from .webhook import DeliveryResult, WebhookClient

__all__ = [
    "DeliveryResult",
    "WebhookClient",
]
