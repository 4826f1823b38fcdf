"""
Signal Notification Sink: default sink, hands events to Django receivers.

The realtime layer (websocket, push, e-mail) connects a receiver to
ledgerman.signals.low_stock_alert and does the delivery.
"""

from __future__ import annotations

from ledgerman.protocols.notifications import LowStockEvent
from ledgerman.signals import low_stock_alert


class SignalNotificationSink:
    """Publishes by sending the low_stock_alert signal."""

    def publish(self, topic: str, event: LowStockEvent) -> None:
        low_stock_alert.send(sender=type(self), topic=topic, event=event)
