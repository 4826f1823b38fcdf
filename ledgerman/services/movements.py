"""
Stock movements: state-changing ledger operations (apply, apply_all, adjust).

Every write goes through StockMovements.append(), which:
1. reads the product's head entry with select_for_update()
2. computes balance_after = head.balance_after + change
3. refuses negative balances (InsufficientStock)
4. inserts the entry at head.sequence + 1

Step 4 is a compare-and-swap: (product_id, sequence) is unique, so a
writer that read a stale head fails with ConcurrentModification instead
of overdrawing. Outermost calls retry the whole transaction.
"""

import logging
import time
from dataclasses import dataclass

from django.db import IntegrityError, OperationalError, transaction

from ledgerman.adapters.loader import get_catalog_backend
from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import (
    ConcurrentModification,
    InsufficientStock,
    NotFound,
    ValidationError,
)
from ledgerman.models.entry import StockEntry
from ledgerman.models.enums import SourceType
from ledgerman.services.alerts import LowStockNotifier
from ledgerman.services.balances import BalanceQueries

logger = logging.getLogger('ledgerman')


@dataclass(frozen=True)
class StockOperation:
    """
    One signed stock change, validated on construction.

    Usage:
        StockOperation('42', -30, SourceType.MANUAL_ADJUSTMENT, source_id='7', note='Quebra')

    Raises:
        ValidationError: product_id empty, change not a non-zero int,
            source_type outside SourceType, or a text field longer than
            its StockEntry column
    """

    product_id: str
    change: int
    source_type: SourceType
    source_id: str = ''
    note: str = ''

    def __post_init__(self):
        product_id = '' if self.product_id is None else str(self.product_id).strip()
        if not product_id:
            raise ValidationError('product_id', 'obrigatório')

        if isinstance(self.change, bool) or not isinstance(self.change, int):
            raise ValidationError('change', 'deve ser um número inteiro')
        if self.change == 0:
            raise ValidationError('change', 'deve ser diferente de zero')

        try:
            source_type = SourceType(self.source_type)
        except ValueError:
            raise ValidationError('source_type', f'desconhecido: {self.source_type!r}')

        source_id = '' if self.source_id is None else str(self.source_id)
        note = str(self.note or '')
        for field, value in (('product_id', product_id), ('source_id', source_id), ('note', note)):
            max_length = StockEntry._meta.get_field(field).max_length
            if len(value) > max_length:
                raise ValidationError(field, f'máximo de {max_length} caracteres')

        object.__setattr__(self, 'product_id', product_id)
        object.__setattr__(self, 'source_type', source_type)
        object.__setattr__(self, 'source_id', source_id)
        object.__setattr__(self, 'note', note)


def run_atomic(func, *args, **kwargs):
    """
    Run func inside transaction.atomic(), retrying ConcurrentModification.

    Retries only when this is the outermost transaction: inside a caller's
    atomic block the error propagates and the caller decides. Backoff is
    CONFLICT_BACKOFF seconds, doubling per attempt, CONFLICT_RETRIES times.
    """
    nested = transaction.get_connection().in_atomic_block
    retries = 0 if nested else ledgerman_settings.CONFLICT_RETRIES
    attempt = 0

    while True:
        try:
            with transaction.atomic():
                return func(*args, **kwargs)
        except ConcurrentModification as exc:
            if attempt >= retries:
                raise
            attempt += 1
            logger.info(
                "stock.conflict.retry",
                extra={"product_id": exc.data.get('product_id'), "attempt": attempt},
            )
            time.sleep(ledgerman_settings.CONFLICT_BACKOFF * 2 ** (attempt - 1))


class StockMovements:
    """State-changing stock movement methods."""

    def __init__(self, catalog=None, notifier: LowStockNotifier | None = None):
        self._catalog = catalog
        self.notifier = notifier or LowStockNotifier(catalog=catalog)

    @property
    def catalog(self):
        return self._catalog or get_catalog_backend()

    # ══════════════════════════════════════════════════════════════
    # PUBLIC
    # ══════════════════════════════════════════════════════════════

    def apply(self, operation: StockOperation) -> StockEntry:
        """
        Commit one signed stock change.

        Raises:
            InsufficientStock: If the balance would go negative
            NotFound: If VALIDATE_PRODUCTS is on and the product is unknown

        Concurrency:
            - Runs under transaction.atomic() (retried on conflict when outermost)
            - Head entry locked with select_for_update()
            - Low-stock check scheduled with on_commit()
        """
        def _apply():
            # Lock first, then read the head in a fresh statement
            self.lock([operation.product_id])
            entry = self.append(operation)
            self.notifier.schedule([entry])
            return entry

        entry = run_atomic(_apply)
        logger.info(
            "stock.apply",
            extra={
                "product_id": entry.product_id,
                "change": entry.change,
                "balance_after": entry.balance_after,
                "source_type": entry.source_type,
                "source_id": entry.source_id,
            },
        )
        return entry

    def apply_all(self, operations) -> list[StockEntry]:
        """
        Commit a group of stock changes, all or nothing.

        Operations are validated first, then the head entry of every
        touched product is locked in product order, then operations are
        appended in the given order. The whole batch must see one
        consistent snapshot of every balance it touches, which the lock
        pass plus the per-product sequence constraint provide. Any failure
        rolls back every entry of the batch.

        Returns:
            Created entries, in operation order

        Raises:
            InsufficientStock: If any operation would overdraw (nothing is kept)
            ValidationError: If any item is not a StockOperation
        """
        operations = list(operations)
        for index, operation in enumerate(operations):
            if not isinstance(operation, StockOperation):
                raise ValidationError(f'operations[{index}]', 'deve ser StockOperation')
        if not operations:
            return []

        product_ids = list(dict.fromkeys(op.product_id for op in operations))

        def _apply_all():
            self.lock(product_ids)
            entries = [self.append(operation) for operation in operations]
            self.notifier.schedule(entries)
            return entries

        entries = run_atomic(_apply_all)
        logger.info(
            "stock.batch",
            extra={
                "operations": len(entries),
                "products": product_ids,
            },
        )
        return entries

    def adjust(self, product_id, delta: int, reason: str, actor_id) -> StockEntry:
        """
        Manual adjustment by an inventory user.

        Authorization is the caller's job; actor_id is recorded as source_id.

        Raises:
            ValidationError: If reason is empty
            InsufficientStock: If the balance would go negative
        """
        if not reason or not str(reason).strip():
            raise ValidationError('reason', 'obrigatório')

        return self.apply(StockOperation(
            product_id=product_id,
            change=delta,
            source_type=SourceType.MANUAL_ADJUSTMENT,
            source_id=actor_id,
            note=reason,
        ))

    # ══════════════════════════════════════════════════════════════
    # BUILDING BLOCKS (must run inside transaction.atomic)
    # ══════════════════════════════════════════════════════════════

    def lock(self, product_ids) -> None:
        """Lock the head entry of each product, in sorted order."""
        for product_id in sorted({str(p) for p in product_ids}):
            self._head(product_id)

    def append(self, operation: StockOperation) -> StockEntry:
        """
        Write one entry. No notification, no transaction of its own.

        Raises:
            InsufficientStock, NotFound, ConcurrentModification
        """
        if ledgerman_settings.VALIDATE_PRODUCTS:
            if self.catalog.get_product(operation.product_id) is None:
                raise NotFound('product', operation.product_id)

        head = self._head(operation.product_id)
        current = head.balance_after if head else 0
        new_balance = current + operation.change

        if new_balance < 0:
            raise InsufficientStock(
                operation.product_id,
                available=current,
                required=abs(operation.change),
            )

        try:
            with transaction.atomic():
                return StockEntry.objects.create(
                    product_id=operation.product_id,
                    sequence=(head.sequence if head else 0) + 1,
                    change=operation.change,
                    balance_after=new_balance,
                    source_type=operation.source_type,
                    source_id=operation.source_id,
                    note=operation.note,
                )
        except IntegrityError:
            raise ConcurrentModification(operation.product_id)

    def _head(self, product_id) -> StockEntry | None:
        try:
            return BalanceQueries.latest_entry(product_id, for_update=True)
        except OperationalError:
            # Lock not available with LOCK_NOWAIT
            if not ledgerman_settings.LOCK_NOWAIT:
                raise
            raise ConcurrentModification(product_id)
