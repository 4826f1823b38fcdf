"""
Ledger Service: The single public interface for all stock operations.

Usage:
    from ledgerman import ledger, LedgerError

    ledger.adjust(farinha.pk, 500, 'Compra NF 1234', user.pk)
    ledger.current_balance(farinha.pk)  # 500
    ledger.consume(ordem.pk)            # consumes BOM, produces, marks DONE

Collaborators (catalog, orders, notification sink) come from
settings.LEDGERMAN unless injected:

    ledger = StockLedger(sink=InMemoryNotificationSink())
"""

from ledgerman.services.alerts import LowStockItem, LowStockNotifier
from ledgerman.services.balances import BalanceQueries, LedgerAudit, StockSummary
from ledgerman.services.consumption import (
    AvailabilityReport,
    ConsumptionResult,
    OrderConsumption,
)
from ledgerman.services.movements import StockMovements, StockOperation
from ledgerman.models.entry import StockEntry


class StockLedger:
    """
    Single interface for all ledger operations.

    IMPORTANT: All state-changing methods run in atomic transactions
    with row locking and a per-product compare-and-swap on the ledger
    head. See each service for details.
    """

    def __init__(self, catalog=None, orders=None, sink=None):
        self.notifier = LowStockNotifier(catalog=catalog, sink=sink)
        self.movements = StockMovements(catalog=catalog, notifier=self.notifier)
        self.consumption = OrderConsumption(self.movements, orders=orders)

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    def current_balance(self, product_id) -> int:
        return BalanceQueries.current_balance(product_id)

    def current_balances(self, product_ids) -> dict[str, int]:
        return BalanceQueries.current_balances(product_ids)

    def history(self, product_id, limit: int | None = None, offset: int = 0) -> list[StockEntry]:
        return BalanceQueries.history(product_id, limit=limit, offset=offset)

    def summary(self, product_ids=None) -> list[StockSummary]:
        return BalanceQueries.summary(product_ids)

    def verify(self, product_id) -> LedgerAudit:
        return BalanceQueries.verify(product_id)

    def low_stock(self, threshold: int | None = None) -> list[LowStockItem]:
        return self.notifier.scan(threshold)

    def check_availability(self, order_id) -> AvailabilityReport:
        return self.consumption.check_availability(order_id)

    # ══════════════════════════════════════════════════════════════
    # MOVEMENTS
    # ══════════════════════════════════════════════════════════════

    def apply(self, operation: StockOperation) -> StockEntry:
        return self.movements.apply(operation)

    def apply_all(self, operations) -> list[StockEntry]:
        return self.movements.apply_all(operations)

    def adjust(self, product_id, delta: int, reason: str, actor_id) -> StockEntry:
        return self.movements.adjust(product_id, delta, reason, actor_id)

    # ══════════════════════════════════════════════════════════════
    # MANUFACTURING ORDERS
    # ══════════════════════════════════════════════════════════════

    def consume(self, order_id) -> ConsumptionResult:
        return self.consumption.consume(order_id)


# Default instance: collaborators resolved from settings on use
ledger = StockLedger()
