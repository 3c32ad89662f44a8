import pytest
from inventory.catalog import set_catalog
from inventory.catalog.fake_adapter import InMemoryCatalogStore
from inventory.stock import StockReservationGate


@pytest.fixture()
def store():
    catalog = InMemoryCatalogStore()
    catalog.add_product("prod-tee", "Classic Tee", 20.0, stock=10)
    catalog.add_product("prod-mug", "Coffee Mug", 12.5, stock=3)
    set_catalog(catalog)
    return catalog


@pytest.fixture()
def gate(store):
    return StockReservationGate()
