"""Catalog store port (abstract interface).

The catalog owns each product's price and stock count. Checkout only reads
prices and availability, and changes stock through ``decrement_stock``,
which every adapter must implement as a single conditional decrement: the
row is updated only when enough stock remains, so concurrent reservations
can never drive stock below zero.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogProduct:
    """Price and stock record for one product."""

    id: str
    name: str
    price: float
    stock: int
    is_active: bool = True


class CatalogStore(ABC):
    """Abstract catalog store interface."""

    @abstractmethod
    def get_product(self, product_id: str) -> CatalogProduct | None:
        """Return the product record, or None when it does not exist."""
        ...

    @abstractmethod
    def available_quantity(self, product_id: str) -> int:
        """Current stock for a product; 0 for unknown products."""
        ...

    @abstractmethod
    def decrement_stock(self, product_id: str, quantity: int, reservation_key: str) -> int | None:
        """Atomically take ``quantity`` units out of stock.

        Returns the new stock level, or None when the product is unknown or
        has fewer than ``quantity`` units left (nothing is changed). A
        ``reservation_key`` that was already applied is not applied again;
        the current stock level is returned instead.
        """
        ...
