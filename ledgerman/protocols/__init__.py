"""
Ledgerman Protocols.

Defines interfaces for external system integration.
"""

from ledgerman.protocols.catalog import CatalogBackend, ProductInfo
from ledgerman.protocols.notifications import LowStockEvent, NotificationSink
from ledgerman.protocols.orders import (
    BomLine,
    OrderBackend,
    OrderInfo,
    OrderState,
    parse_bom_snapshot,
)

__all__ = [
    "CatalogBackend",
    "ProductInfo",
    "OrderBackend",
    "OrderInfo",
    "OrderState",
    "BomLine",
    "parse_bom_snapshot",
    "LowStockEvent",
    "NotificationSink",
]
