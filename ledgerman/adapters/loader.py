"""
Ledgerman adapter loader: collaborators configured by dotted path.

Usage:
    from ledgerman.adapters import get_catalog_backend

    catalog = get_catalog_backend()
    info = catalog.get_product("42")

Settings:
    LEDGERMAN = {
        "CATALOG_BACKEND": "catalog.adapters.LedgerCatalog",
        "ORDER_BACKEND": "production.adapters.LedgerOrders",
        "NOTIFICATION_SINK": "ledgerman.adapters.signals.SignalNotificationSink",
    }

If a backend is not configured, its getter raises ImproperlyConfigured.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string

from ledgerman.conf import ledgerman_settings
from ledgerman.protocols.catalog import CatalogBackend
from ledgerman.protocols.notifications import NotificationSink
from ledgerman.protocols.orders import OrderBackend

logger = logging.getLogger(__name__)


# Cached instances, keyed by setting name
_lock = threading.Lock()
_instances: dict[str, Any] = {}


def _load(setting: str) -> Any:
    instance = _instances.get(setting)
    if instance is None:
        with _lock:
            instance = _instances.get(setting)
            if instance is None:  # double-checked
                path = getattr(ledgerman_settings, setting)

                if not path:
                    raise ImproperlyConfigured(
                        f"LEDGERMAN['{setting}'] must be configured."
                    )

                try:
                    backend_class = import_string(path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import {setting} '{path}': {e}"
                    ) from e

                instance = backend_class()
                _instances[setting] = instance
                logger.debug("Loaded %s: %s", setting, path)

    return instance


def get_catalog_backend() -> CatalogBackend:
    """Return the configured catalog backend."""
    return _load("CATALOG_BACKEND")


def get_order_backend() -> OrderBackend:
    """Return the configured manufacturing order backend."""
    return _load("ORDER_BACKEND")


def get_notification_sink() -> NotificationSink:
    """Return the configured notification sink."""
    return _load("NOTIFICATION_SINK")


def reset_backends() -> None:
    """Reset cached instances. Useful for testing and settings changes."""
    with _lock:
        _instances.clear()
