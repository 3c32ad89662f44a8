"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartLineAdded:
    """A product or customized item was added to the cart, or an existing line grew."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    product_id = Identifier()
    customization_id = Identifier()
    quantity = Integer(required=True)
    unit_price = Float(required=True)


@ordering.event(part_of="Cart")
class CartLineQuantityUpdated:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="Cart")
class CartLineRemoved:
    __version__ = "v1"

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """All lines were removed, either by the customer or after an order was placed."""

    __version__ = "v1"

    cart_id = Identifier(required=True)
    order_id = Identifier()
    reason = String(max_length=50)
    cleared_at = DateTime(required=True)
