"""
Enums for Ledgerman models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class SourceType(models.TextChoices):
    """
    What caused a ledger entry.

    Closed set: StockOperation rejects anything else before it reaches
    the database.
    """
    MANUAL_ADJUSTMENT = 'MANUAL_ADJUSTMENT', _('Ajuste manual')
    MO_CONSUMPTION = 'MO_CONSUMPTION', _('Consumo de OP')      # Material used by a manufacturing order
    MO_PRODUCTION = 'MO_PRODUCTION', _('Produção de OP')       # Finished good from a manufacturing order
    INITIAL_STOCK = 'INITIAL_STOCK', _('Estoque inicial')
    IMPORT = 'IMPORT', _('Importação')


class EntryType(models.TextChoices):
    """Direction of a ledger entry, derived from the sign of change."""
    IN = 'IN', _('Entrada')
    OUT = 'OUT', _('Saída')
