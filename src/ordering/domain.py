"""Ordering bounded context: Cart, Checkout and Order Settlement.

Handles the shopping cart, promotional discounts, the checkout state
machine, and the settlement pipeline that turns a cart into a durable,
correctly-priced order.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
