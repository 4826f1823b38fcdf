"""
Django Ledgerman: Razão de estoque e consumo de ordens de produção.

Uso:
    from ledgerman import ledger, LedgerError

    ledger.adjust(farinha.pk, -30, 'Quebra', user.pk)
    ledger.consume(ordem.pk)
    ledger.current_balance(farinha.pk)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'ledger':
        from ledgerman.service import ledger
        return ledger
    elif name == 'StockLedger':
        from ledgerman.service import StockLedger
        return StockLedger
    elif name == 'StockOperation':
        from ledgerman.services.movements import StockOperation
        return StockOperation
    elif name == 'LedgerError':
        from ledgerman.exceptions import LedgerError
        return LedgerError
    elif name == 'StockEntry':
        from ledgerman.models.entry import StockEntry
        return StockEntry
    elif name == 'SourceType':
        from ledgerman.models.enums import SourceType
        return SourceType
    elif name == 'EntryType':
        from ledgerman.models.enums import EntryType
        return EntryType
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'ledger',
    'StockLedger',
    'StockOperation',
    'LedgerError',
    'StockEntry',
    'SourceType',
    'EntryType',
]

__version__ = '0.1.0'
