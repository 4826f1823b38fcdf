"""
Exceptions for Ledgerman.

All errors are LedgerError with a structured code for programmatic handling.
Each failure kind has its own subclass, so callers can either catch the
subclass or switch on ``code``.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Error carrying a machine-readable code and structured context.

    Subclasses fill ``_default_messages`` so the message can be omitted.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, data={self.data!r})"


class LedgerError(BaseError):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.adjust(produto.pk, -30, 'Quebra', user.pk)
        except LedgerError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Só tem {e.available} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INSUFFICIENT_STOCK': 'Estoque insuficiente',
        'INVALID_STATE': 'Estado inválido para esta operação',
        'MISSING_BOM': 'Ordem de produção sem lista de materiais',
        'NOT_FOUND': 'Registro não encontrado',
        'VALIDATION_ERROR': 'Operação inválida',
        'CONCURRENT_MODIFICATION': 'Modificação concorrente detectada',
    }

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def required(self) -> int:
        """Shortcut for data['required']."""
        return self.data.get('required', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


class InsufficientStock(LedgerError):
    """Resulting balance would go negative. Nothing was written."""

    def __init__(self, product_id, available: int, required: int, **data):
        super().__init__(
            'INSUFFICIENT_STOCK',
            f"Estoque insuficiente para {product_id}: "
            f"disponível {available}, necessário {required}",
            product_id=str(product_id),
            available=available,
            required=required,
            **data,
        )

    @property
    def requirements(self) -> list[dict]:
        return self.data.get('requirements', [])

    @property
    def shortages(self) -> list[dict]:
        return self.data.get('shortages', [])


class InvalidState(LedgerError):
    def __init__(self, order_id, current, expected):
        super().__init__(
            'INVALID_STATE',
            order_id=str(order_id),
            current=str(current),
            expected=str(expected),
        )


class MissingBOM(LedgerError):
    def __init__(self, order_id):
        super().__init__('MISSING_BOM', order_id=str(order_id))


class NotFound(LedgerError):
    def __init__(self, kind: str, id):
        super().__init__(
            'NOT_FOUND',
            f"{kind} {id} não encontrado",
            kind=kind,
            id=str(id),
        )


class ValidationError(LedgerError):
    """Malformed operation input, rejected before any database access."""

    def __init__(self, field: str, reason: str):
        super().__init__(
            'VALIDATION_ERROR',
            f"{field}: {reason}",
            field=field,
            reason=reason,
        )


class ConcurrentModification(LedgerError):
    """
    Another writer appended to the product's ledger first.

    Raised when the head entry read by this transaction is no longer the
    head at insert time. Outermost ledger calls retry it automatically.
    """

    def __init__(self, product_id):
        super().__init__('CONCURRENT_MODIFICATION', product_id=str(product_id))
