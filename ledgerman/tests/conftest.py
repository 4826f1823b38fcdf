"""
Pytest fixtures for Ledgerman tests.
"""

from decimal import Decimal

import pytest

from ledgerman.adapters import InMemoryNotificationSink, reset_backends
from ledgerman.models import SourceType
from ledgerman.service import StockLedger
from ledgerman.services import StockOperation
from ledgerman.tests.testapp.models import BomComponent, ManufacturingOrder, Product


@pytest.fixture(autouse=True)
def _fresh_backends():
    """Adapters are cached per process; start every test clean."""
    reset_backends()
    yield
    reset_backends()


@pytest.fixture
def sink():
    """Injected notification sink that records events."""
    return InMemoryNotificationSink()


@pytest.fixture
def ledger(sink):
    """Ledger with an injected sink; catalog and orders from settings."""
    return StockLedger(sink=sink)


@pytest.fixture
def receive(ledger):
    """Helper: put initial stock on a product."""
    def _receive(product, quantity):
        return ledger.apply(StockOperation(
            product_id=product.pk,
            change=quantity,
            source_type=SourceType.INITIAL_STOCK,
        ))
    return _receive


@pytest.fixture
def flour(db):
    """Raw material M1."""
    return Product.objects.create(sku='MP-FARINHA', name='Farinha', unit='kg')


@pytest.fixture
def butter(db):
    """Raw material M2."""
    return Product.objects.create(sku='MP-MANTEIGA', name='Manteiga', unit='kg')


@pytest.fixture
def croissant(db):
    """Finished good."""
    return Product.objects.create(sku='PA-CROISSANT', name='Croissant', is_finished=True)


@pytest.fixture
def croissant_bom(croissant, flour, butter):
    """Live BOM: 2 flour + 1 butter per croissant."""
    BomComponent.objects.create(product=croissant, material=flour, qty_per_unit=Decimal('2'))
    BomComponent.objects.create(product=croissant, material=butter, qty_per_unit=Decimal('1'))
    return croissant.bom.all()


@pytest.fixture
def order(croissant, croissant_bom):
    """Order for 5 croissants, started (BOM frozen)."""
    mo = ManufacturingOrder.objects.create(order_no='OP-0001', product=croissant, quantity=5)
    return mo.start()
