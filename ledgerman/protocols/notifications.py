"""
Notification Sink Protocol.

Low-stock events leave the ledger through this port. How they reach
people (websocket, e-mail, polling) is up to the implementation.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class LowStockEvent:
    """Balance at or below the product's configured minimum."""

    product_id: str
    product_name: str
    sku: str
    current_stock: int
    min_stock_level: int
    audience: tuple[str, ...] = ()  # Roles that should see it

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["audience"] = list(self.audience)
        return data


@runtime_checkable
class NotificationSink(Protocol):
    """Anything that can publish an event under a topic."""

    def publish(self, topic: str, event: LowStockEvent) -> None:
        ...
