"""
StockEntry model: Immutable ledger of stock changes.
"""

from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from ledgerman.models.enums import EntryType, SourceType


class StockEntryQuerySet(models.QuerySet):
    """QuerySet with helpers for ledger reads. Bulk writes are refused."""

    def for_product(self, product_id):
        return self.filter(product_id=str(product_id))

    def newest_first(self):
        return self.order_by('-sequence')

    def head(self, product_id):
        """Latest entry of a product, or None."""
        return self.for_product(product_id).newest_first().first()

    def update(self, **kwargs):
        raise ValueError(
            "Lançamentos são imutáveis. "
            "Para corrigir, registre um novo lançamento com variação inversa."
        )

    def delete(self):
        raise ValueError(
            "Lançamentos são imutáveis. "
            "Para estornar, registre um novo lançamento com variação inversa."
        )


class StockEntry(models.Model):
    """
    Immutable record of one signed stock change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new entries with inverse change
    - balance_after is the running total right after this entry
    - (product_id, sequence) is unique: a writer that read a stale head
      cannot insert, which is what serializes concurrent writers

    This is the ONLY model that changes stock.
    """

    # Product reference (catalog is external, id kept as text)
    product_id = models.CharField(
        max_length=64,
        db_index=True,
        verbose_name=_('ID do Produto'),
    )
    sequence = models.PositiveIntegerField(
        verbose_name=_('Sequência'),
        help_text=_('Posição do lançamento no razão do produto (começa em 1)'),
    )

    change = models.IntegerField(
        verbose_name=_('Variação'),
        help_text=_('Positivo = entrada, Negativo = saída'),
    )
    type = models.CharField(
        max_length=3,
        choices=EntryType.choices,
        editable=False,
        verbose_name=_('Tipo'),
    )
    quantity = models.PositiveIntegerField(
        editable=False,
        verbose_name=_('Quantidade'),
    )
    balance_after = models.IntegerField(
        verbose_name=_('Saldo após'),
    )

    # Origin (order, user, import...)
    source_type = models.CharField(
        max_length=32,
        choices=SourceType.choices,
        verbose_name=_('Origem'),
    )
    source_id = models.CharField(
        max_length=64,
        blank=True,
        default='',
        verbose_name=_('ID da Origem'),
    )
    note = models.CharField(
        max_length=255,
        blank=True,
        default='',
        verbose_name=_('Observação'),
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Data/Hora'))

    objects = StockEntryQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lançamento de Estoque')
        verbose_name_plural = _('Lançamentos de Estoque')
        ordering = ['product_id', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['product_id', 'sequence'],
                name='unique_stock_entry_sequence',
            ),
            models.CheckConstraint(
                condition=Q(balance_after__gte=0),
                name='stock_entry_balance_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['product_id', '-sequence'], name='ledgerman_entry_head_idx'),
            models.Index(fields=['source_type', 'source_id'], name='ledgerman_entry_source_idx'),
        ]

    def save(self, *args, **kwargs):
        """Insert only. Derives type and quantity from change."""
        if self.pk:
            raise ValueError(
                "Lançamentos são imutáveis. "
                "Para corrigir, registre um novo lançamento com variação inversa."
            )

        if self.balance_after < 0:
            raise ValueError("Saldo não pode ficar negativo")

        self.type = EntryType.IN if self.change >= 0 else EntryType.OUT
        self.quantity = abs(self.change)
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """Prevent deletion: entries are immutable."""
        raise ValueError(
            "Lançamentos são imutáveis. "
            "Para estornar, registre um novo lançamento com variação inversa."
        )

    @property
    def balance_before(self) -> int:
        return self.balance_after - self.change

    def __str__(self) -> str:
        signal = '+' if self.change > 0 else ''
        return f"{self.product_id}#{self.sequence} {signal}{self.change} = {self.balance_after}"
