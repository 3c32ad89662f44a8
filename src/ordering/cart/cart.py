"""Cart aggregate (CQRS): the customer's selected line items and running subtotal.

Every line carries a price snapshot taken when it was added. A line is
either a catalog product or a customized item, never both. Adding the same
product in the same color and size grows the existing line instead of
creating a second one.
"""

from datetime import UTC, datetime
from decimal import Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.cart.events import CartCleared, CartLineAdded, CartLineQuantityUpdated, CartLineRemoved
from ordering.domain import ordering
from ordering.pricing.engine import line_subtotal


@ordering.entity(part_of="Cart")
class CartLine:
    product_id = Identifier()
    customization_id = Identifier()
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    selected_color = String(max_length=50)
    selected_size = String(max_length=50)
    added_at = DateTime()

    @property
    def is_customized(self) -> bool:
        return bool(self.customization_id)


@ordering.aggregate
class Cart:
    customer_id = Identifier(required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def each_line_references_exactly_one_item(self):
        for line in self.lines:
            if bool(line.product_id) == bool(line.customization_id):
                raise ValidationError(
                    {"lines": ["A cart line must reference either a product or a customization, not both"]}
                )

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def subtotal(self) -> Decimal:
        return line_subtotal(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def _line(self, line_id) -> CartLine:
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise ValidationError({"line_id": ["Line not found in cart"]})
        return line

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_product(self, product_id, product_name, unit_price, quantity=1, selected_color=None, selected_size=None):
        """Add a catalog product, merging with a line for the same product, color and size."""
        existing = next(
            (
                line
                for line in self.lines
                if str(line.product_id) == str(product_id)
                and line.selected_color == selected_color
                and line.selected_size == selected_size
            ),
            None,
        )

        now = datetime.now(UTC)
        if existing:
            existing.quantity += quantity
            line = existing
        else:
            line = CartLine(
                product_id=product_id,
                product_name=product_name,
                quantity=quantity,
                unit_price=unit_price,
                selected_color=selected_color,
                selected_size=selected_size,
                added_at=now,
            )
            self.add_lines(line)

        self.updated_at = now
        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                product_id=str(product_id),
                quantity=quantity,
                unit_price=line.unit_price,
            )
        )
        return line

    def add_customization(
        self, customization_id, product_name, unit_price, quantity=1, selected_color=None, selected_size=None
    ):
        """Add a customized item. Each customization gets its own line."""
        now = datetime.now(UTC)
        line = CartLine(
            customization_id=customization_id,
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
            selected_color=selected_color,
            selected_size=selected_size,
            added_at=now,
        )
        self.add_lines(line)
        self.updated_at = now

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                customization_id=str(customization_id),
                quantity=quantity,
                unit_price=unit_price,
            )
        )
        return line

    def update_quantity(self, line_id, new_quantity):
        if new_quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        line = self._line(line_id)
        previous_quantity = line.quantity
        line.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_line(self, line_id):
        line = self._line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line_id)))

    def clear(self, order_id=None):
        """Remove every line. ``order_id`` is set when the cart was emptied by a placed order."""
        for line in list(self.lines):
            self.remove_lines(line)

        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                order_id=str(order_id) if order_id else None,
                reason="order_placed" if order_id else "cleared",
                cleared_at=now,
            )
        )
