"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """An order and its settlement tasks were durably recorded."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    checkout_id = Identifier()
    subtotal = Float(required=True)
    shipping_amount = Float(required=True)
    tax = Float(required=True)
    discount_amount = Float(required=True)
    total = Float(required=True)
    discount_code = String()
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class SettlementTaskCompleted:
    __version__ = "v1"

    order_id = Identifier(required=True)
    task_id = Identifier(required=True)
    kind = String(required=True)
    attempts = Integer(required=True)


@ordering.event(part_of="Order")
class SettlementTaskDeadLettered:
    """A post-placement task gave up and needs out-of-band reconciliation."""

    __version__ = "v1"

    order_id = Identifier(required=True)
    task_id = Identifier(required=True)
    kind = String(required=True)
    attempts = Integer(required=True)
    last_error = String(max_length=1000)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    __version__ = "v1"

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)
