"""
Tests for ledger.apply_all(): all-or-nothing batches.
"""

import pytest

from ledgerman.exceptions import InsufficientStock, ValidationError
from ledgerman.models import SourceType, StockEntry
from ledgerman.services import StockOperation


pytestmark = pytest.mark.django_db


class TestApplyAll:
    """Tests for ledger.apply_all()."""

    def test_batch_commits_every_operation(self, ledger, receive, flour, butter):
        receive(flour, 10)

        entries = ledger.apply_all([
            StockOperation(flour.pk, -4, SourceType.MANUAL_ADJUSTMENT),
            StockOperation(butter.pk, 6, SourceType.INITIAL_STOCK),
            StockOperation(flour.pk, -6, SourceType.MANUAL_ADJUSTMENT),
        ])

        assert [e.balance_after for e in entries] == [6, 6, 0]
        assert [e.sequence for e in entries] == [2, 1, 3]
        assert ledger.current_balance(flour.pk) == 0
        assert ledger.current_balance(butter.pk) == 6

    def test_third_operation_overdraws_nothing_is_kept(self, ledger, receive, flour, butter, croissant):
        """Ops 1 and 2 are valid, op 3 overdraws: none of them persist."""
        receive(flour, 10)
        before = StockEntry.objects.count()

        with pytest.raises(InsufficientStock) as exc:
            ledger.apply_all([
                StockOperation(flour.pk, -5, SourceType.MANUAL_ADJUSTMENT),
                StockOperation(butter.pk, 5, SourceType.INITIAL_STOCK),
                StockOperation(croissant.pk, -1, SourceType.MANUAL_ADJUSTMENT),
            ])

        assert exc.value.data['product_id'] == str(croissant.pk)
        assert StockEntry.objects.count() == before
        assert ledger.current_balance(flour.pk) == 10
        assert ledger.current_balance(butter.pk) == 0

    def test_operations_on_same_product_see_each_other(self, ledger, receive, flour):
        """The second op reads the balance left by the first."""
        receive(flour, 10)

        with pytest.raises(InsufficientStock) as exc:
            ledger.apply_all([
                StockOperation(flour.pk, -7, SourceType.MANUAL_ADJUSTMENT),
                StockOperation(flour.pk, -7, SourceType.MANUAL_ADJUSTMENT),
            ])

        assert exc.value.available == 3
        assert ledger.current_balance(flour.pk) == 10

    def test_empty_batch(self, ledger):
        assert ledger.apply_all([]) == []

    def test_rejects_non_operations(self, ledger, flour):
        with pytest.raises(ValidationError) as exc:
            ledger.apply_all([{'product_id': flour.pk, 'change': 1}])

        assert exc.value.data['field'] == 'operations[0]'

    def test_notifies_each_touched_product_once_after_commit(
        self, ledger, sink, receive, flour, django_capture_on_commit_callbacks
    ):
        flour.min_stock_alert = 5
        flour.save()
        receive(flour, 20)

        with django_capture_on_commit_callbacks(execute=True):
            ledger.apply_all([
                StockOperation(flour.pk, -8, SourceType.MANUAL_ADJUSTMENT),
                StockOperation(flour.pk, -8, SourceType.MANUAL_ADJUSTMENT),
            ])

        assert len(sink.events) == 1
        assert sink.events[0].current_stock == 4

    def test_failed_batch_notifies_nothing(
        self, ledger, sink, receive, flour, django_capture_on_commit_callbacks
    ):
        flour.min_stock_alert = 50
        flour.save()
        receive(flour, 20)
        sink.clear()

        with django_capture_on_commit_callbacks(execute=True):
            with pytest.raises(InsufficientStock):
                ledger.apply_all([
                    StockOperation(flour.pk, -8, SourceType.MANUAL_ADJUSTMENT),
                    StockOperation(flour.pk, -80, SourceType.MANUAL_ADJUSTMENT),
                ])

        assert sink.events == []
