"""Application tests for cart commands via domain.process()."""

import pytest
from ordering.cart.cart import Cart
from ordering.cart.items import AddCustomizedItem, AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import ClearCart, CreateCart
from protean import current_domain
from protean.exceptions import ValidationError


def _create_cart(customer_id="cust-001"):
    return current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)


def _add(cart_id, product_id="prod-tee", quantity=1, **kwargs):
    return current_domain.process(
        AddToCart(cart_id=cart_id, product_id=product_id, quantity=quantity, **kwargs),
        asynchronous=False,
    )


class TestCreateCart:
    def test_create_cart(self):
        cart_id = _create_cart()
        cart = current_domain.repository_for(Cart).get(cart_id)
        assert str(cart.customer_id) == "cust-001"
        assert cart.is_empty


class TestAddToCart:
    def test_snapshots_catalog_price_and_name(self, catalog):
        cart_id = _create_cart()
        line_id = _add(cart_id, quantity=2, selected_color="Red")

        cart = current_domain.repository_for(Cart).get(cart_id)
        line = cart.lines[0]
        assert str(line.id) == line_id
        assert line.product_name == "Classic Tee"
        assert line.unit_price == 20.0
        assert line.selected_color == "Red"

    def test_later_price_change_does_not_touch_the_line(self, catalog):
        cart_id = _create_cart()
        _add(cart_id)
        catalog.add_product("prod-tee", "Classic Tee", 25.0, stock=10)

        cart = current_domain.repository_for(Cart).get(cart_id)
        assert cart.lines[0].unit_price == 20.0

    def test_unknown_product(self, catalog):
        cart_id = _create_cart()
        with pytest.raises(ValidationError) as exc:
            _add(cart_id, product_id="prod-missing")
        assert "Product is not available" in str(exc.value)

    def test_inactive_product(self, catalog):
        catalog.add_product("prod-old", "Retired Tee", 9.0, stock=5, is_active=False)
        cart_id = _create_cart()
        with pytest.raises(ValidationError):
            _add(cart_id, product_id="prod-old")

    def test_out_of_stock_product_can_still_be_added(self, catalog):
        cart_id = _create_cart()
        _add(cart_id, product_id="prod-cap")
        cart = current_domain.repository_for(Cart).get(cart_id)
        assert len(cart.lines) == 1


class TestCustomizedItems:
    def test_add_customized_item(self):
        cart_id = _create_cart()
        current_domain.process(
            AddCustomizedItem(
                cart_id=cart_id,
                customization_id="design-1",
                product_name="Custom Tee",
                unit_price=35.0,
                quantity=1,
            ),
            asynchronous=False,
        )
        cart = current_domain.repository_for(Cart).get(cart_id)
        assert cart.lines[0].is_customized
        assert cart.lines[0].unit_price == 35.0


class TestQuantityAndRemoval:
    def test_update_quantity(self, catalog):
        cart_id = _create_cart()
        line_id = _add(cart_id)
        current_domain.process(
            UpdateCartQuantity(cart_id=cart_id, line_id=line_id, new_quantity=5),
            asynchronous=False,
        )
        cart = current_domain.repository_for(Cart).get(cart_id)
        assert cart.lines[0].quantity == 5

    def test_remove_line(self, catalog):
        cart_id = _create_cart()
        line_id = _add(cart_id)
        current_domain.process(RemoveFromCart(cart_id=cart_id, line_id=line_id), asynchronous=False)
        assert current_domain.repository_for(Cart).get(cart_id).is_empty

    def test_clear_cart(self, catalog):
        cart_id = _create_cart()
        _add(cart_id)
        _add(cart_id, product_id="prod-mug")
        current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)
        assert current_domain.repository_for(Cart).get(cart_id).is_empty
