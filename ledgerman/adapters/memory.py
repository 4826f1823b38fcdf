"""
In-memory Notification Sink: keeps published events in a list.

Usage in settings.py:
    LEDGERMAN = {
        "NOTIFICATION_SINK": "ledgerman.adapters.memory.InMemoryNotificationSink",
    }

Meant for tests and local development. Events live only as long as the
sink instance and are never delivered anywhere.
"""

from __future__ import annotations

import threading

from ledgerman.protocols.notifications import LowStockEvent


class InMemoryNotificationSink:
    """Records (topic, event) pairs in publish order."""

    def __init__(self):
        self._lock = threading.Lock()
        self.published: list[tuple[str, LowStockEvent]] = []

    def publish(self, topic: str, event: LowStockEvent) -> None:
        with self._lock:
            self.published.append((topic, event))

    @property
    def events(self) -> list[LowStockEvent]:
        return [event for _, event in self.published]

    def clear(self) -> None:
        with self._lock:
            self.published.clear()
