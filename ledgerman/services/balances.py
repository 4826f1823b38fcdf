"""
Balance queries: read-only operations over the ledger.

The balance of a product is the balance_after of its latest entry.
Only latest_entry(for_update=True) takes locks; callers that need it
must already be inside transaction.atomic().
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from django.db.models import Count, Max, Q, Sum

from ledgerman.conf import ledgerman_settings
from ledgerman.models.entry import StockEntry
from ledgerman.models.enums import EntryType

logger = logging.getLogger('ledgerman')


@dataclass(frozen=True)
class StockSummary:
    """Per-product totals over the whole ledger."""

    product_id: str
    current_stock: int
    total_in: int
    total_out: int
    entries: int
    last_updated: datetime | None


@dataclass(frozen=True)
class LedgerAudit:
    """Result of recomputing one product's ledger from its raw entries."""

    product_id: str
    entries: int
    computed: int
    recorded: int
    problems: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.problems


class BalanceQueries:
    """Read-only balance query methods."""

    @classmethod
    def latest_entry(cls, product_id, for_update: bool = False) -> StockEntry | None:
        """
        Head of the product's ledger.

        With for_update=True the head row is locked (SELECT ... FOR UPDATE)
        on backends that support it. The per-product unique sequence still
        catches writers that raced past the lock, e.g. when the ledger is
        empty and there is no row to lock.
        """
        qs = StockEntry.objects.for_product(product_id).newest_first()
        if for_update:
            qs = qs.select_for_update(nowait=ledgerman_settings.LOCK_NOWAIT)
        return qs.first()

    @classmethod
    def current_balance(cls, product_id) -> int:
        """Current balance, 0 when the product has no entries."""
        entry = cls.latest_entry(product_id)
        return entry.balance_after if entry else 0

    @classmethod
    def current_balances(cls, product_ids) -> dict[str, int]:
        """Current balance for each product id (as text)."""
        return {
            str(product_id): cls.current_balance(product_id)
            for product_id in product_ids
        }

    @classmethod
    def product_ids(cls) -> list[str]:
        """Every product that has at least one entry."""
        return list(
            StockEntry.objects.order_by('product_id')
            .values_list('product_id', flat=True)
            .distinct()
        )

    @classmethod
    def history(cls, product_id, limit: int | None = None, offset: int = 0):
        """
        Entries of a product, newest first.

        Args:
            product_id: Product identifier
            limit: Page size (None = HISTORY_PAGE_SIZE)
            offset: Entries to skip

        Returns:
            List of StockEntry
        """
        if limit is None:
            limit = ledgerman_settings.HISTORY_PAGE_SIZE
        qs = StockEntry.objects.for_product(product_id).newest_first()
        return list(qs[offset:offset + limit])

    @classmethod
    def summary(cls, product_ids=None) -> list[StockSummary]:
        """
        Totals per product: current stock, total in, total out.

        Args:
            product_ids: Restrict to these products (None = all in the ledger)
        """
        qs = StockEntry.objects.order_by()
        if product_ids is not None:
            qs = qs.filter(product_id__in=[str(p) for p in product_ids])

        rows = qs.values('product_id').annotate(
            total_in=Sum('quantity', filter=Q(type=EntryType.IN), default=0),
            total_out=Sum('quantity', filter=Q(type=EntryType.OUT), default=0),
            entries=Count('id'),
            last_updated=Max('created_at'),
        ).order_by('product_id')

        return [
            StockSummary(
                product_id=row['product_id'],
                current_stock=cls.current_balance(row['product_id']),
                total_in=row['total_in'],
                total_out=row['total_out'],
                entries=row['entries'],
                last_updated=row['last_updated'],
            )
            for row in rows
        ]

    @classmethod
    def verify(cls, product_id) -> LedgerAudit:
        """
        Recompute a product's ledger from its entries.

        Checks that sequences are contiguous from 1, that every
        balance_after equals the running sum of change, and that no
        balance is negative.

        Use for:
        - Integrity audit
        - Debug

        Entries are never rewritten; problems are only reported.
        """
        rows = (
            StockEntry.objects.for_product(product_id)
            .order_by('sequence')
            .values_list('sequence', 'change', 'balance_after')
        )

        running = 0
        recorded = 0
        count = 0
        problems = []
        for expected, (sequence, change, balance_after) in enumerate(rows, start=1):
            count += 1
            running += change
            recorded = balance_after
            if sequence != expected:
                problems.append(f"sequência {sequence}, esperada {expected}")
            if balance_after != running:
                problems.append(
                    f"#{sequence}: saldo registrado {balance_after}, calculado {running}"
                )
            if balance_after < 0:
                problems.append(f"#{sequence}: saldo negativo {balance_after}")

        audit = LedgerAudit(
            product_id=str(product_id),
            entries=count,
            computed=running,
            recorded=recorded,
            problems=problems,
        )

        if not audit.ok:
            logger.warning(
                "stock.audit.mismatch",
                extra={
                    "product_id": str(product_id),
                    "computed": running,
                    "recorded": recorded,
                    "problems": problems,
                },
            )

        return audit
