"""
Ledgerman Models.

- StockEntry: Immutable ledger of signed stock changes
- SourceType: What caused an entry
- EntryType: IN / OUT
"""

from ledgerman.models.entry import StockEntry
from ledgerman.models.enums import EntryType, SourceType

__all__ = [
    'SourceType',
    'EntryType',
    'StockEntry',
]
