"""
Tests for the verify_ledger management command.
"""

from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from ledgerman.models import EntryType, SourceType, StockEntry


pytestmark = pytest.mark.django_db


def _raw_entry(product_id, sequence, change, balance_after):
    """Entry written around save(), the way a bad import would."""
    return StockEntry(
        product_id=product_id,
        sequence=sequence,
        change=change,
        type=EntryType.IN if change >= 0 else EntryType.OUT,
        quantity=abs(change),
        balance_after=balance_after,
        source_type=SourceType.IMPORT,
    )


class TestVerifyLedger:

    def test_consistent_ledger(self, ledger, receive, flour, butter):
        receive(flour, 10)
        ledger.adjust(flour.pk, -3, 'Uso', actor_id=1)
        receive(butter, 4)
        out = StringIO()

        call_command('verify_ledger', verbosity=2, stdout=out)

        output = out.getvalue()
        assert f'{flour.pk}: 2 lançamento(s), saldo 7' in output
        assert '2 produto(s) conferido(s), razão consistente' in output

    def test_empty_ledger(self):
        out = StringIO()

        call_command('verify_ledger', stdout=out)

        assert '0 produto(s) conferido(s)' in out.getvalue()

    def test_inconsistent_ledger_fails(self, receive, flour):
        receive(flour, 10)
        StockEntry.objects.bulk_create([
            _raw_entry('EXT-9', 1, 5, 5),
            _raw_entry('EXT-9', 3, 2, 9),
        ])
        out, err = StringIO(), StringIO()

        with pytest.raises(CommandError) as exc:
            call_command('verify_ledger', stdout=out, stderr=err)

        assert '1 produto(s) com inconsistência' in str(exc.value)
        errors = err.getvalue()
        assert 'EXT-9' in errors
        assert 'sequência 3, esperada 2' in errors
        assert '#3: saldo registrado 9, calculado 7' in errors

    def test_only_selected_products(self, receive, flour):
        receive(flour, 10)
        StockEntry.objects.bulk_create([_raw_entry('EXT-9', 1, 5, 6)])
        out = StringIO()

        call_command('verify_ledger', '--product', str(flour.pk), stdout=out)

        assert '1 produto(s) conferido(s), razão consistente' in out.getvalue()
