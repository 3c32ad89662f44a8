"""Domain events for the Checkout aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="Checkout")
class CheckoutStarted:
    __version__ = "v1"

    checkout_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    address_id = Identifier()
    started_at = DateTime(required=True)


@ordering.event(part_of="Checkout")
class CheckoutDiscountApplied:
    __version__ = "v1"

    checkout_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    code = String(required=True)
    discount_amount = Float(required=True)


@ordering.event(part_of="Checkout")
class CheckoutDiscountRemoved:
    __version__ = "v1"

    checkout_id = Identifier(required=True)
    code = String(required=True)


@ordering.event(part_of="Checkout")
class CheckoutSubmitted:
    """The customer placed the order and settlement began."""

    __version__ = "v1"

    checkout_id = Identifier(required=True)
    idempotency_key = String(required=True)
    submitted_at = DateTime(required=True)


@ordering.event(part_of="Checkout")
class CheckoutSettled:
    __version__ = "v1"

    checkout_id = Identifier(required=True)
    order_id = Identifier(required=True)
    settled_at = DateTime(required=True)


@ordering.event(part_of="Checkout")
class CheckoutFailed:
    """Submission stopped before the order was written; the cart is untouched."""

    __version__ = "v1"

    checkout_id = Identifier(required=True)
    reason = String(required=True, max_length=1000)
    error_code = String(max_length=50)
    failed_at = DateTime(required=True)
