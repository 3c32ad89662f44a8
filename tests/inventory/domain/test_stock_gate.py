"""Tests for the stock reservation gate and the in-memory catalog store."""

import threading
from dataclasses import dataclass

import pytest
from inventory.catalog import get_catalog, reset_catalog
from inventory.catalog.fake_adapter import CatalogUnavailable, InMemoryCatalogStore
from inventory.stock import InsufficientStock, StockReservationGate, catalog_lines


@dataclass
class Line:
    product_id: str | None
    quantity: int
    product_name: str = ""
    customization_id: str | None = None


# ---------------------------------------------------------------
# Requested quantities
# ---------------------------------------------------------------
class TestCatalogLines:
    def test_quantities_are_summed_per_product(self):
        lines = [Line("prod-tee", 2), Line("prod-mug", 1), Line("prod-tee", 3)]
        assert catalog_lines(lines) == {"prod-tee": 5, "prod-mug": 1}

    def test_first_seen_order_is_kept(self):
        lines = [Line("prod-mug", 1), Line("prod-tee", 1)]
        assert list(catalog_lines(lines)) == ["prod-mug", "prod-tee"]

    def test_customized_lines_are_skipped(self):
        lines = [Line(None, 1, customization_id="design-1"), Line("prod-tee", 1)]
        assert catalog_lines(lines) == {"prod-tee": 1}


# ---------------------------------------------------------------
# Availability checks
# ---------------------------------------------------------------
class TestEnsureAvailable:
    def test_enough_stock(self, gate, store):
        gate.ensure_available([Line("prod-tee", 10, "Classic Tee")])
        assert store.available_quantity("prod-tee") == 10

    def test_short_product_raises(self, gate):
        with pytest.raises(InsufficientStock) as exc:
            gate.ensure_available([Line("prod-tee", 1, "Classic Tee"), Line("prod-mug", 5, "Coffee Mug")])

        assert exc.value.product_id == "prod-mug"
        assert exc.value.requested == 5
        assert exc.value.available == 3
        assert exc.value.message == "Only 3 of Coffee Mug available, 5 requested"

    def test_split_lines_are_checked_together(self, gate):
        with pytest.raises(InsufficientStock) as exc:
            gate.ensure_available([Line("prod-mug", 2, "Coffee Mug"), Line("prod-mug", 2, "Coffee Mug")])
        assert exc.value.requested == 4

    def test_unknown_product_has_no_stock(self, gate):
        with pytest.raises(InsufficientStock) as exc:
            gate.ensure_available([Line("prod-missing", 1)])
        assert exc.value.available == 0

    def test_check_never_changes_stock(self, gate, store):
        gate.check_available("prod-mug", 3)
        assert store.available_quantity("prod-mug") == 3


# ---------------------------------------------------------------
# Reservations
# ---------------------------------------------------------------
class TestReserve:
    def test_reserve_decrements(self, gate, store):
        assert gate.reserve("prod-tee", 4, "order-1:item-1") == 6
        assert store.available_quantity("prod-tee") == 6

    def test_reserve_more_than_available(self, gate, store):
        with pytest.raises(InsufficientStock) as exc:
            gate.reserve("prod-mug", 4, "order-1:item-1")
        assert exc.value.available == 3
        assert store.available_quantity("prod-mug") == 3

    def test_replayed_key_is_applied_once(self, gate, store):
        gate.reserve("prod-tee", 4, "order-1:item-1")
        assert gate.reserve("prod-tee", 4, "order-1:item-1") == 6
        assert store.reservations() == {"order-1:item-1": ("prod-tee", 4)}

    def test_concurrent_reservations_never_oversell(self, gate, store):
        results = []

        def reserve(n):
            try:
                gate.reserve("prod-mug", 1, f"order-{n}:item-1")
                results.append("reserved")
            except InsufficientStock:
                results.append("short")

        threads = [threading.Thread(target=reserve, args=(n,)) for n in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("reserved") == 3
        assert results.count("short") == 7
        assert store.available_quantity("prod-mug") == 0


# ---------------------------------------------------------------
# In-memory store behavior
# ---------------------------------------------------------------
class TestInMemoryCatalogStore:
    def test_configured_failure(self):
        store = InMemoryCatalogStore()
        store.configure(should_succeed=False, failure_reason="Catalog down")
        with pytest.raises(CatalogUnavailable, match="Catalog down"):
            store.available_quantity("prod-tee")

    def test_calls_are_recorded(self):
        store = InMemoryCatalogStore()
        store.available_quantity("prod-tee")
        assert store.calls == [{"method": "available_quantity", "product_id": "prod-tee"}]

    def test_gate_uses_the_installed_catalog(self, store):
        assert StockReservationGate().catalog is store

    def test_reset_installs_a_fresh_store(self, store):
        reset_catalog()
        assert get_catalog() is not store
        assert isinstance(get_catalog(), InMemoryCatalogStore)
