"""
Low-stock alerts: evaluate thresholds after stock changes.

Usage:
    from ledgerman.services.alerts import LowStockNotifier

    notifier = LowStockNotifier(sink=my_sink)
    notifier.schedule(entries)         # inside a transaction: runs after commit
    notifier.check([material.pk])      # immediately

Alerting is best-effort. Nothing raised here ever reaches the stock
operation that triggered the check.
"""

import logging
from dataclasses import dataclass
from functools import partial

from django.db import transaction

from ledgerman.adapters.loader import get_catalog_backend, get_notification_sink
from ledgerman.conf import ledgerman_settings
from ledgerman.protocols.notifications import LowStockEvent
from ledgerman.services.balances import BalanceQueries

logger = logging.getLogger('ledgerman')

ALERT_EVERY = 'every'
ALERT_CROSSING = 'crossing'


@dataclass(frozen=True)
class LowStockItem:
    """A raw material at or below a threshold (see LowStockNotifier.scan)."""

    product_id: str
    name: str
    sku: str
    unit: str
    current_stock: int
    threshold: int


class LowStockNotifier:
    """
    Compares latest balances with each product's min_stock_alert and
    publishes a LowStockEvent when balance <= threshold.

    Policy (LEDGERMAN['ALERT_ON']):
    - "every": publish on every check that finds the product low
    - "crossing": publish only when the triggering transaction took the
      balance from above the threshold to at or below it

    The crossing window of a transaction is (balance before its first
    entry, balance after its last entry) per product, captured by
    schedule() before commit. Entries committed later by other writers
    do not move it.
    """

    def __init__(self, catalog=None, sink=None):
        self._catalog = catalog
        self._sink = sink

    @property
    def catalog(self):
        return self._catalog or get_catalog_backend()

    @property
    def sink(self):
        return self._sink or get_notification_sink()

    def schedule(self, entries) -> None:
        """
        Run check() for the products of entries after the current
        transaction commits.

        Args:
            entries: StockEntry rows written by this transaction, in
                write order
        """
        windows: dict[str, tuple[int, int]] = {}
        for entry in entries:
            before = windows[entry.product_id][0] if entry.product_id in windows else entry.balance_before
            windows[entry.product_id] = (before, entry.balance_after)

        if windows:
            transaction.on_commit(partial(self.check, list(windows), windows))

    def check(self, product_ids, windows=None) -> list[LowStockEvent]:
        """
        Evaluate each distinct product and publish triggered alerts.

        Args:
            product_ids: Products to evaluate
            windows: Optional {product_id: (balance_before, balance_after)}
                of the triggering transaction, used by the "crossing"
                policy. Products without one use their latest entry.

        Returns:
            Events that were published successfully
        """
        windows = windows or {}
        published = []
        for product_id in dict.fromkeys(str(p) for p in product_ids):
            try:
                event = self._evaluate(product_id, windows.get(product_id))
                if event is None:
                    continue
                self.sink.publish(ledgerman_settings.LOW_STOCK_TOPIC, event)
            except Exception:
                logger.exception(
                    "stock.alert.failed",
                    extra={"product_id": product_id},
                )
                continue

            published.append(event)
            logger.warning(
                "stock.alert.triggered",
                extra={
                    "product_id": product_id,
                    "min_stock_level": event.min_stock_level,
                    "current_stock": event.current_stock,
                },
            )
        return published

    def scan(self, threshold: int | None = None) -> list[LowStockItem]:
        """
        Raw materials currently at or below a threshold, lowest first.

        Args:
            threshold: Fixed limit for every product. None uses
                LOW_STOCK_THRESHOLD, or each product's own min_stock_alert
                when that setting is 0.

        Only products present in the ledger are considered; finished
        goods are skipped.
        """
        if threshold is None:
            threshold = ledgerman_settings.LOW_STOCK_THRESHOLD or None

        catalog = self.catalog
        items = []
        for product_id, balance in BalanceQueries.current_balances(BalanceQueries.product_ids()).items():
            product = catalog.get_product(product_id)
            if product is None or product.is_finished:
                continue

            limit = threshold if threshold is not None else product.min_stock_alert
            if limit is None or balance > limit:
                continue

            items.append(LowStockItem(
                product_id=product_id,
                name=product.name,
                sku=product.sku,
                unit=product.unit,
                current_stock=balance,
                threshold=limit,
            ))

        return sorted(items, key=lambda item: (item.current_stock, item.product_id))

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _evaluate(self, product_id: str, window: tuple[int, int] | None = None) -> LowStockEvent | None:
        product = self.catalog.get_product(product_id)
        if product is None or product.min_stock_alert is None:
            return None

        entry = BalanceQueries.latest_entry(product_id)
        balance = entry.balance_after if entry else 0
        threshold = product.min_stock_alert

        # Restocked above the threshold since: no longer low
        if balance > threshold:
            return None

        if ledgerman_settings.ALERT_ON == ALERT_CROSSING:
            if window is None:
                if entry is None:
                    return None
                window = (entry.balance_before, entry.balance_after)
            before, after = window
            if not before > threshold >= after:
                return None

        return LowStockEvent(
            product_id=product_id,
            product_name=product.name,
            sku=product.sku,
            current_stock=balance,
            min_stock_level=threshold,
            audience=tuple(ledgerman_settings.LOW_STOCK_AUDIENCE),
        )
