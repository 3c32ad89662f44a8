"""Stock reservation gate.

Sits between checkout and the catalog store. Availability checks are
read-only; ``reserve`` is the only path that changes stock and it relies on
the store's conditional decrement rather than a read followed by a write.
Lines for customized items are not catalog products and are never checked
or reserved.
"""

from collections import OrderedDict

import structlog

from inventory.catalog import get_catalog
from inventory.catalog.port import CatalogStore

logger = structlog.get_logger(__name__)


class InsufficientStock(Exception):
    code = "insufficient_stock"

    def __init__(self, product_id: str, requested: int, available: int, product_name: str | None = None):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        self.product_name = product_name
        label = product_name or self.product_id
        self.message = f"Only {available} of {label} available, {requested} requested"
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


def catalog_lines(lines) -> "OrderedDict[str, int]":
    """Requested quantity per catalog product, in first-seen order.

    Lines without a ``product_id`` (customized items) are skipped. Lines for
    the same product in different colors or sizes draw on the same stock, so
    their quantities are added together.
    """
    requested: OrderedDict[str, int] = OrderedDict()
    for line in lines:
        if getattr(line, "customization_id", None) or not getattr(line, "product_id", None):
            continue
        product_id = str(line.product_id)
        requested[product_id] = requested.get(product_id, 0) + int(line.quantity)
    return requested


class StockReservationGate:
    def __init__(self, catalog: CatalogStore | None = None) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog or get_catalog()

    def check_available(self, product_id: str, requested_qty: int) -> int:
        """Return the quantity currently available. Never changes stock."""
        available = self.catalog.available_quantity(str(product_id))
        logger.debug("Stock checked", product_id=str(product_id), requested=requested_qty, available=available)
        return available

    def ensure_available(self, lines) -> None:
        """Check every catalog line before anything is reserved.

        Raises ``InsufficientStock`` for the first product that is short.
        """
        for product_id, requested in catalog_lines(lines).items():
            available = self.check_available(product_id, requested)
            if available < requested:
                name = next(
                    (getattr(line, "product_name", None) for line in lines if str(line.product_id) == product_id),
                    None,
                )
                logger.info("Insufficient stock", product_id=product_id, requested=requested, available=available)
                raise InsufficientStock(product_id, requested, available, product_name=name)

    def reserve(self, product_id: str, qty: int, reservation_key: str) -> int:
        """Take ``qty`` units out of stock and return the new stock level.

        Reserving again with the same ``reservation_key`` is a no-op.
        """
        new_qty = self.catalog.decrement_stock(str(product_id), int(qty), reservation_key)
        if new_qty is None:
            available = self.catalog.available_quantity(str(product_id))
            logger.warning(
                "Stock reservation rejected",
                product_id=str(product_id),
                requested=qty,
                available=available,
                reservation_key=reservation_key,
            )
            raise InsufficientStock(product_id, qty, available)

        logger.info("Stock reserved", product_id=str(product_id), quantity=qty, remaining=new_qty)
        return new_qty
