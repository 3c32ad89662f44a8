"""Domain events for the Discount aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="Discount")
class DiscountCreated:
    """A new promotional code was made available."""

    __version__ = "v1"

    discount_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    value = Float(required=True)
    usage_limit = Integer()


@ordering.event(part_of="Discount")
class DiscountRedeemed:
    """A placed order consumed one use of a discount code."""

    __version__ = "v1"

    discount_id = Identifier(required=True)
    code = String(required=True)
    order_id = Identifier(required=True)
    used_count = Integer(required=True)
    redeemed_at = DateTime(required=True)


@ordering.event(part_of="Discount")
class DiscountDeactivated:
    __version__ = "v1"

    discount_id = Identifier(required=True)
    code = String(required=True)
