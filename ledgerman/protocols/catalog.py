"""
Catalog Protocol: Interface for product lookup.

Ledgerman defines this protocol, the catalog app implements it.
Products are read-only from the ledger's point of view.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ProductInfo:
    """What the ledger needs to know about a product."""

    id: str
    sku: str
    name: str
    unit: str = "un"  # "un", "kg", "lt", etc.
    min_stock_alert: int | None = None  # None = no alert configured
    is_finished: bool = False  # Finished good (False = raw material)


@runtime_checkable
class CatalogBackend(Protocol):
    """
    Protocol for product lookup.

    Implementations resolve a product id (as text) to ProductInfo.
    """

    def get_product(self, product_id: str) -> ProductInfo | None:
        """
        Get product information.

        Args:
            product_id: Product identifier

        Returns:
            ProductInfo or None if not found
        """
        ...
