"""
Manufacturing Order Protocol.

Defines the interface Ledgerman uses to read manufacturing orders and to
perform the one transition it owns (IN_PROGRESS → DONE).

Everything else in the order lifecycle (planning, starting, cancelling)
belongs to the production app.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Protocol, runtime_checkable


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════


class OrderState(str, Enum):
    """Estado de uma ordem de produção."""

    PLANNED = "PLANNED"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"  # Terminal, set only by ledger consumption
    CANCELED = "CANCELED"  # Terminal, no stock effect


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class BomLine:
    """One component of a frozen bill of materials."""

    material_id: str
    qty_per_unit: Decimal
    material_name: str = ""
    material_sku: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BomLine:
        """
        Build from a stored snapshot row.

        Accepts both camelCase (materialId, qtyPerUnit...) and
        snake_case keys.
        """
        def pick(snake, camel, default=None):
            if snake in data:
                return data[snake]
            return data.get(camel, default)

        return cls(
            material_id=str(pick("material_id", "materialId")),
            qty_per_unit=Decimal(str(pick("qty_per_unit", "qtyPerUnit", 0))),
            material_name=pick("material_name", "materialName", "") or "",
            material_sku=pick("material_sku", "materialSku", "") or "",
        )

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["qty_per_unit"] = str(self.qty_per_unit)
        return data


def parse_bom_snapshot(raw: Iterable[dict[str, Any]] | None) -> tuple[BomLine, ...]:
    """Parse a stored snapshot (list of dicts) into BomLines."""
    if not raw:
        return ()
    return tuple(BomLine.from_dict(row) for row in raw)


@dataclass(frozen=True)
class OrderInfo:
    """Read-only view of a manufacturing order."""

    id: str
    order_no: str
    product_id: str
    quantity: int
    state: OrderState
    bom_snapshot: tuple[BomLine, ...] = field(default_factory=tuple)


# ══════════════════════════════════════════════════════════════
# PROTOCOL
# ══════════════════════════════════════════════════════════════


@runtime_checkable
class OrderBackend(Protocol):
    """
    Interface para o Ledgerman ler e concluir ordens de produção.

    Both methods run inside the ledger's transaction, so implementations
    must use the same database connection (the default Django ORM does).
    """

    def get_order(self, order_id: str, for_update: bool = False) -> OrderInfo | None:
        """
        Load an order.

        Args:
            order_id: Order identifier
            for_update: Lock the order row until the transaction ends

        Returns:
            OrderInfo or None if not found
        """
        ...

    def mark_done(self, order_id: str) -> OrderInfo:
        """
        Transition IN_PROGRESS → DONE.

        Returns:
            The updated order
        """
        ...
