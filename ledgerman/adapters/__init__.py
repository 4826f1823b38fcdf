"""
Ledgerman Adapters.

Implementations of protocols and the loader for configured backends.
"""

from ledgerman.adapters.loader import (
    get_catalog_backend,
    get_notification_sink,
    get_order_backend,
    reset_backends,
)
from ledgerman.adapters.memory import InMemoryNotificationSink
from ledgerman.adapters.signals import SignalNotificationSink

__all__ = [
    "get_catalog_backend",
    "get_order_backend",
    "get_notification_sink",
    "reset_backends",
    "InMemoryNotificationSink",
    "SignalNotificationSink",
]
