"""Cart line management: commands and handler.

Adding a catalog product snapshots the catalog's current name and price onto
the line. Customized items are priced by the customization flow and arrive
with their own price.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from inventory.catalog import get_catalog
from ordering.cart.cart import Cart
from ordering.domain import ordering


@ordering.command(part_of="Cart")
class AddToCart:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    selected_color = String(max_length=50)
    selected_size = String(max_length=50)


@ordering.command(part_of="Cart")
class AddCustomizedItem:
    cart_id = Identifier(required=True)
    customization_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    selected_color = String(max_length=50)
    selected_size = String(max_length=50)


@ordering.command(part_of="Cart")
class UpdateCartQuantity:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    new_quantity = Integer(required=True, min_value=1)


@ordering.command(part_of="Cart")
class RemoveFromCart:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@ordering.command_handler(part_of=Cart)
class ManageCartLinesHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_catalog().get_product(str(command.product_id))
        if product is None or not product.is_active:
            raise ValidationError({"product_id": ["Product is not available"]})

        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        line = cart.add_product(
            product_id=product.id,
            product_name=product.name,
            unit_price=product.price,
            quantity=command.quantity,
            selected_color=command.selected_color,
            selected_size=command.selected_size,
        )
        repo.add(cart)
        return str(line.id)

    @handle(AddCustomizedItem)
    def add_customized_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        line = cart.add_customization(
            customization_id=command.customization_id,
            product_name=command.product_name,
            unit_price=command.unit_price,
            quantity=command.quantity,
            selected_color=command.selected_color,
            selected_size=command.selected_size,
        )
        repo.add(cart)
        return str(line.id)

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.update_quantity(line_id=command.line_id, new_quantity=command.new_quantity)
        repo.add(cart)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.remove_line(line_id=command.line_id)
        repo.add(cart)
