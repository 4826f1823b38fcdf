"""
Ledgerman configuration.

Usage in settings.py:
    LEDGERMAN = {
        "CATALOG_BACKEND": "catalog.adapters.LedgerCatalog",
        "ORDER_BACKEND": "production.adapters.LedgerOrders",
        "NOTIFICATION_SINK": "ledgerman.adapters.signals.SignalNotificationSink",
        "ALERT_ON": "every",
        "CONFLICT_RETRIES": 3,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LedgermanSettings:
    """Ledgerman configuration settings."""

    # Product lookup backend (dotted path, implements CatalogBackend)
    CATALOG_BACKEND: str = ""

    # Manufacturing order backend (dotted path, implements OrderBackend)
    ORDER_BACKEND: str = ""

    # Where low-stock events go (dotted path, implements NotificationSink)
    NOTIFICATION_SINK: str = "ledgerman.adapters.signals.SignalNotificationSink"

    # Reject operations for products unknown to the catalog
    VALIDATE_PRODUCTS: bool = True

    # Low-stock alerting
    LOW_STOCK_TOPIC: str = "stock:low_stock_alert"
    LOW_STOCK_AUDIENCE: tuple = ("INVENTORY", "MANAGER", "ADMIN")
    # "every" = each qualifying operation, "crossing" = only when crossing the threshold
    ALERT_ON: str = "every"
    # Default threshold for scan() when none is given (0 = use each product's own)
    LOW_STOCK_THRESHOLD: int = 0

    # Retries for ConcurrentModification at the outermost call
    CONFLICT_RETRIES: int = 3
    # Base backoff in seconds (doubles per attempt)
    CONFLICT_BACKOFF: float = 0.05

    # Fail fast instead of waiting on row locks (backends with NOWAIT support)
    LOCK_NOWAIT: bool = False

    HISTORY_PAGE_SIZE: int = 50


def get_ledgerman_settings() -> LedgermanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LEDGERMAN", {})
    return LedgermanSettings(**{
        k: v for k, v in user_settings.items()
        if k in LedgermanSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledgerman_settings(), name)


ledgerman_settings = _LazySettings()
