"""
Ledger services: modular organization of stock operations.

    from ledgerman.services import BalanceQueries, StockMovements, OrderConsumption, LowStockNotifier
"""

from ledgerman.services.alerts import LowStockItem, LowStockNotifier
from ledgerman.services.balances import BalanceQueries, LedgerAudit, StockSummary
from ledgerman.services.consumption import (
    AvailabilityReport,
    ConsumptionResult,
    MaterialRequirement,
    OrderConsumption,
)
from ledgerman.services.movements import StockMovements, StockOperation, run_atomic

__all__ = [
    'BalanceQueries',
    'StockSummary',
    'LedgerAudit',
    'StockMovements',
    'StockOperation',
    'run_atomic',
    'OrderConsumption',
    'MaterialRequirement',
    'AvailabilityReport',
    'ConsumptionResult',
    'LowStockNotifier',
    'LowStockItem',
]
