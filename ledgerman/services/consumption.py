"""
Order consumption: completes a manufacturing order against the ledger.

consume() is the only way an order reaches DONE. In one transaction it:
1. locks the order and checks it is IN_PROGRESS with a BOM snapshot
2. locks every material and the output product
3. computes requirement vs. availability for ALL components
4. if anything is short: raises InsufficientStock with the full list
5. otherwise writes one OUT per material, one IN for the output product,
   and marks the order DONE

Requirements come from the order's frozen bom_snapshot only. Editing the
product's live bill of materials never changes what an order consumes.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal

from ledgerman.adapters.loader import get_order_backend
from ledgerman.exceptions import (
    InsufficientStock,
    InvalidState,
    MissingBOM,
    NotFound,
    ValidationError,
)
from ledgerman.models.entry import StockEntry
from ledgerman.models.enums import SourceType
from ledgerman.protocols.orders import OrderInfo, OrderState
from ledgerman.services.balances import BalanceQueries
from ledgerman.services.movements import StockMovements, StockOperation, run_atomic

logger = logging.getLogger('ledgerman')


@dataclass(frozen=True)
class MaterialRequirement:
    """What one material needs for an order, and what the ledger has."""

    material_id: str
    material_name: str
    material_sku: str
    qty_per_unit: Decimal
    required: int
    available: int

    @property
    def shortage(self) -> int:
        return max(0, self.required - self.available)

    def as_dict(self) -> dict:
        data = asdict(self)
        data['qty_per_unit'] = str(self.qty_per_unit)
        data['shortage'] = self.shortage
        return data


@dataclass(frozen=True)
class AvailabilityReport:
    order_id: str
    requirements: list[MaterialRequirement]

    @property
    def shortages(self) -> list[MaterialRequirement]:
        return [r for r in self.requirements if r.shortage > 0]

    @property
    def can_produce(self) -> bool:
        return not self.shortages


@dataclass(frozen=True)
class ConsumptionResult:
    consumed: list[StockEntry]
    produced: StockEntry
    order: OrderInfo


class OrderConsumption:
    """Manufacturing order completion against the stock ledger."""

    def __init__(self, movements: StockMovements, orders=None):
        self.movements = movements
        self._orders = orders

    @property
    def orders(self):
        return self._orders or get_order_backend()

    def check_availability(self, order_id) -> AvailabilityReport:
        """
        Read-only pre-flight: requirement vs. availability per material.

        No locks, no state check. The answer can be stale by the time
        consume() runs; consume() checks again under lock.

        Raises:
            NotFound: If the order does not exist
            MissingBOM: If the order has no snapshot
        """
        order = self.orders.get_order(str(order_id))
        if order is None:
            raise NotFound('order', order_id)
        if not order.bom_snapshot:
            raise MissingBOM(order.id)
        return AvailabilityReport(order_id=order.id, requirements=self._requirements(order))

    def consume(self, order_id) -> ConsumptionResult:
        """
        Consume materials, produce the finished good, mark the order DONE.

        Returns:
            ConsumptionResult(consumed, produced, order)

        Raises:
            NotFound: If the order does not exist
            InvalidState: If the order is not IN_PROGRESS
            MissingBOM: If the order has no snapshot
            InsufficientStock: If any material is short. Carries
                requirements and shortages for every component.

        Concurrency:
            - Runs under transaction.atomic() (retried on conflict when outermost)
            - Order row locked via the order backend
            - Head entries locked in product order before reading balances
            - Low-stock check for consumed materials scheduled with on_commit()
        """
        result = run_atomic(self._consume, str(order_id))
        logger.info(
            "stock.consume",
            extra={
                "order_id": result.order.id,
                "order_no": result.order.order_no,
                "materials": [e.product_id for e in result.consumed],
                "produced": result.produced.change,
            },
        )
        return result

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _consume(self, order_id: str) -> ConsumptionResult:
        orders = self.orders
        order = orders.get_order(order_id, for_update=True)

        if order is None:
            raise NotFound('order', order_id)
        try:
            state = OrderState(order.state)
        except ValueError:
            raise InvalidState(order.id, current=order.state, expected=OrderState.IN_PROGRESS.value)
        if state != OrderState.IN_PROGRESS:
            raise InvalidState(order.id, current=state.value, expected=OrderState.IN_PROGRESS.value)
        if not order.bom_snapshot:
            raise MissingBOM(order.id)

        material_ids = [line.material_id for line in order.bom_snapshot]
        self.movements.lock(material_ids + [order.product_id])

        requirements = self._requirements(order)
        shortages = [r for r in requirements if r.shortage > 0]
        if shortages:
            first = shortages[0]
            raise InsufficientStock(
                first.material_id,
                available=first.available,
                required=first.required,
                order_id=order.id,
                requirements=[r.as_dict() for r in requirements],
                shortages=[r.as_dict() for r in shortages],
            )

        consumed = [
            self.movements.append(StockOperation(
                product_id=r.material_id,
                change=-r.required,
                source_type=SourceType.MO_CONSUMPTION,
                source_id=order.id,
                note=f"Consumido na OP {order.order_no}",
            ))
            for r in requirements
        ]
        produced = self.movements.append(StockOperation(
            product_id=order.product_id,
            change=order.quantity,
            source_type=SourceType.MO_PRODUCTION,
            source_id=order.id,
            note=f"Produzido na OP {order.order_no}",
        ))

        done = orders.mark_done(order.id)

        # Production only adds stock, so only materials can become low
        self.movements.notifier.schedule(consumed)

        return ConsumptionResult(consumed=consumed, produced=produced, order=done)

    def _requirements(self, order: OrderInfo) -> list[MaterialRequirement]:
        """One requirement per material; repeated snapshot lines are summed."""
        if isinstance(order.quantity, bool) or not isinstance(order.quantity, int) or order.quantity <= 0:
            raise ValidationError('quantity', 'deve ser um inteiro positivo')

        merged: dict[str, dict] = {}
        for line in order.bom_snapshot:
            if line.qty_per_unit <= 0:
                raise ValidationError('qty_per_unit', f'deve ser positivo ({line.material_id})')

            row = merged.setdefault(line.material_id, {
                'line': line,
                'qty_per_unit': Decimal('0'),
            })
            row['qty_per_unit'] += line.qty_per_unit

        requirements = []
        for material_id, row in merged.items():
            required = row['qty_per_unit'] * order.quantity
            if required != required.to_integral_value():
                raise ValidationError(
                    'qty_per_unit',
                    f'{material_id}: {row["qty_per_unit"]} × {order.quantity} não é inteiro',
                )

            line = row['line']
            requirements.append(MaterialRequirement(
                material_id=material_id,
                material_name=line.material_name,
                material_sku=line.material_sku,
                qty_per_unit=row['qty_per_unit'],
                required=int(required),
                available=BalanceQueries.current_balance(material_id),
            ))

        return requirements
