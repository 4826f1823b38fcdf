"""
Tests for concurrent writers: head compare-and-swap, retries, and races.
"""

import logging
import threading

import pytest
from django.db import OperationalError, connection

from ledgerman.exceptions import ConcurrentModification, InsufficientStock
from ledgerman.models import SourceType, StockEntry
from ledgerman.service import StockLedger
from ledgerman.services import BalanceQueries, StockMovements, StockOperation
from ledgerman.tests.testapp.models import ManufacturingOrder


@pytest.fixture
def stale_head(monkeypatch):
    """
    Make the balance read of apply() return a chosen outdated entry.

    apply() reads the head twice per attempt under lock: once in lock(),
    once in append(). The append() read of the first `times` attempts is
    served the stale entry, simulating a writer that read the head just
    before another writer appended to the same product.
    """
    original = BalanceQueries.latest_entry
    state = {'entry': None, 'times': 0, 'served': 0, 'reads': 0}

    def latest_entry(cls, product_id, for_update=False):
        if for_update:
            state['reads'] += 1
            if state['reads'] % 2 == 0 and state['served'] < state['times']:
                state['served'] += 1
                return state['entry']
        return original(product_id, for_update=for_update)

    monkeypatch.setattr(BalanceQueries, 'latest_entry', classmethod(latest_entry))

    def _stale(entry, times=1):
        state.update(entry=entry, times=times, served=0, reads=0)
        return state
    return _stale


@pytest.mark.django_db
class TestHeadCompareAndSwap:

    def test_stale_head_is_rejected_inside_caller_transaction(self, ledger, receive, flour, stale_head):
        """Inside an outer transaction the conflict propagates unretried."""
        first = receive(flour, 10)
        ledger.adjust(flour.pk, -4, 'Uso', actor_id=1)
        stale_head(first)

        with pytest.raises(ConcurrentModification) as exc:
            ledger.apply(StockOperation(flour.pk, -8, SourceType.MANUAL_ADJUSTMENT))

        assert exc.value.code == 'CONCURRENT_MODIFICATION'
        assert exc.value.data['product_id'] == str(flour.pk)
        assert ledger.current_balance(flour.pk) == 6
        assert StockEntry.objects.for_product(flour.pk).count() == 2

    def test_apply_locks_head_before_reading_balance(self, ledger, receive, flour, monkeypatch):
        """The balance is read in a statement issued after the lock is held."""
        receive(flour, 10)
        calls = []
        original_lock = StockMovements.lock
        original_append = StockMovements.append

        def lock(self, product_ids):
            calls.append(('lock', sorted(str(p) for p in product_ids)))
            return original_lock(self, product_ids)

        def append(self, operation):
            calls.append(('append', operation.product_id))
            return original_append(self, operation)

        monkeypatch.setattr(StockMovements, 'lock', lock)
        monkeypatch.setattr(StockMovements, 'append', append)

        ledger.adjust(flour.pk, -5, 'Uso', actor_id=1)

        assert calls == [('lock', [str(flour.pk)]), ('append', str(flour.pk))]
        assert ledger.current_balance(flour.pk) == 5

    def test_lock_timeout_with_nowait_is_a_conflict(self, ledger, receive, flour, settings, monkeypatch):
        settings.LEDGERMAN = {**settings.LEDGERMAN, 'LOCK_NOWAIT': True}
        receive(flour, 10)

        def busy(cls, product_id, for_update=False):
            raise OperationalError('could not obtain lock on row')

        monkeypatch.setattr(BalanceQueries, 'latest_entry', classmethod(busy))

        with pytest.raises(ConcurrentModification):
            ledger.apply(StockOperation(flour.pk, -1, SourceType.MANUAL_ADJUSTMENT))

    def test_lock_error_without_nowait_propagates(self, ledger, receive, flour, monkeypatch):
        receive(flour, 10)

        def busy(cls, product_id, for_update=False):
            raise OperationalError('database is locked')

        monkeypatch.setattr(BalanceQueries, 'latest_entry', classmethod(busy))

        with pytest.raises(OperationalError):
            ledger.apply(StockOperation(flour.pk, -1, SourceType.MANUAL_ADJUSTMENT))


@pytest.mark.django_db(transaction=True)
class TestConflictRetry:

    def test_retry_rereads_balance(self, ledger, receive, flour, stale_head, caplog):
        """
        First attempt sees balance 10 (stale) and loses the race;
        the retry sees the real balance 6 and refuses -8.
        """
        first = receive(flour, 10)
        ledger.adjust(flour.pk, -4, 'Uso', actor_id=1)
        state = stale_head(first)

        with caplog.at_level(logging.INFO, logger='ledgerman'):
            with pytest.raises(InsufficientStock) as exc:
                ledger.apply(StockOperation(flour.pk, -8, SourceType.MANUAL_ADJUSTMENT))

        assert state['served'] == 1
        assert exc.value.available == 6
        assert caplog.messages.count('stock.conflict.retry') == 1
        assert ledger.current_balance(flour.pk) == 6

    def test_retry_succeeds_when_balance_allows(self, ledger, receive, flour, stale_head):
        first = receive(flour, 10)
        ledger.adjust(flour.pk, -4, 'Uso', actor_id=1)
        stale_head(first)

        entry = ledger.apply(StockOperation(flour.pk, -5, SourceType.MANUAL_ADJUSTMENT))

        assert entry.sequence == 3
        assert entry.balance_after == 1
        assert ledger.verify(flour.pk).ok

    def test_retries_are_bounded(self, ledger, receive, flour, stale_head, settings, caplog):
        settings.LEDGERMAN = {**settings.LEDGERMAN, 'CONFLICT_RETRIES': 2}
        first = receive(flour, 10)
        ledger.adjust(flour.pk, -4, 'Uso', actor_id=1)
        state = stale_head(first, times=100)

        with caplog.at_level(logging.INFO, logger='ledgerman'):
            with pytest.raises(ConcurrentModification):
                ledger.apply(StockOperation(flour.pk, -1, SourceType.MANUAL_ADJUSTMENT))

        assert state['served'] == 3
        assert caplog.messages.count('stock.conflict.retry') == 2
        assert ledger.current_balance(flour.pk) == 6


@pytest.mark.django_db(transaction=True)
class TestConcurrentConsumption:

    def _order(self, order_no, croissant, flour):
        return ManufacturingOrder.objects.create(
            order_no=order_no,
            product=croissant,
            quantity=5,
            state=ManufacturingOrder.IN_PROGRESS,
            bom_snapshot=[{'materialId': str(flour.pk), 'qtyPerUnit': '2'}],
        )

    def test_two_orders_racing_for_the_same_stock(self, sink, receive, flour, croissant):
        """Each order needs all 10 units of flour: exactly one wins."""
        receive(flour, 10)
        orders = [self._order('OP-A', croissant, flour), self._order('OP-B', croissant, flour)]
        barrier = threading.Barrier(len(orders))
        outcomes = {}

        def worker(order):
            try:
                barrier.wait(timeout=5)
                StockLedger(sink=sink).consume(order.pk)
                outcomes[order.order_no] = 'ok'
            except InsufficientStock as e:
                outcomes[order.order_no] = e.code
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(order,)) for order in orders]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(outcomes.values()) == ['INSUFFICIENT_STOCK', 'ok']

        ledger = StockLedger(sink=sink)
        assert ledger.current_balance(flour.pk) == 0
        assert ledger.current_balance(croissant.pk) == 5
        assert ledger.verify(flour.pk).ok

        states = sorted(ManufacturingOrder.objects.values_list('state', flat=True))
        assert states == [ManufacturingOrder.DONE, ManufacturingOrder.IN_PROGRESS]
