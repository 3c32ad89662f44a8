"""In-memory catalog store for development and testing.

Stock changes happen under a lock, so the check and the decrement are one
step even when reservations arrive from several threads. The adapter can be
configured to fail or to stall, which is how checkout timeouts and catalog
outages are exercised in tests.
"""

import threading
import time

from inventory.catalog.port import CatalogProduct, CatalogStore


class CatalogUnavailable(Exception):
    """Raised by the fake store when configured to fail."""


class InMemoryCatalogStore(CatalogStore):
    """Configurable in-memory catalog."""

    def __init__(self) -> None:
        self._products: dict[str, CatalogProduct] = {}
        self._reservations: dict[str, tuple[str, int]] = {}
        self._lock = threading.Lock()
        self.should_succeed: bool = True
        self.failure_reason: str = "Catalog unavailable"
        self.latency: float = 0.0
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Catalog unavailable",
        latency: float = 0.0,
    ) -> None:
        """Configure store behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.latency = latency

    def add_product(self, product_id: str, name: str, price: float, stock: int, is_active: bool = True) -> CatalogProduct:
        product = CatalogProduct(id=str(product_id), name=name, price=price, stock=stock, is_active=is_active)
        with self._lock:
            self._products[product.id] = product
        return product

    def reservations(self) -> dict[str, tuple[str, int]]:
        with self._lock:
            return dict(self._reservations)

    def _simulate(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.latency:
            time.sleep(self.latency)
        if not self.should_succeed:
            raise CatalogUnavailable(self.failure_reason)

    def get_product(self, product_id: str) -> CatalogProduct | None:
        self._simulate("get_product", product_id=product_id)
        with self._lock:
            return self._products.get(str(product_id))

    def available_quantity(self, product_id: str) -> int:
        self._simulate("available_quantity", product_id=product_id)
        with self._lock:
            product = self._products.get(str(product_id))
            return product.stock if product else 0

    def decrement_stock(self, product_id: str, quantity: int, reservation_key: str) -> int | None:
        self._simulate("decrement_stock", product_id=product_id, quantity=quantity, reservation_key=reservation_key)
        with self._lock:
            product = self._products.get(str(product_id))
            if product is None:
                return None

            if reservation_key in self._reservations:
                return product.stock

            if product.stock < quantity:
                return None

            updated = CatalogProduct(
                id=product.id,
                name=product.name,
                price=product.price,
                stock=product.stock - quantity,
                is_active=product.is_active,
            )
            self._products[product.id] = updated
            self._reservations[reservation_key] = (product.id, quantity)
            return updated.stock
