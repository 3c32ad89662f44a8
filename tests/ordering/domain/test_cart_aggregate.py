"""Tests for the Cart aggregate."""

from decimal import Decimal

import pytest
from ordering.cart.cart import Cart, CartLine
from ordering.cart.events import CartCleared, CartLineAdded, CartLineQuantityUpdated, CartLineRemoved
from protean.exceptions import ValidationError


def _make_cart():
    return Cart.create(customer_id="cust-001")


class TestAddProduct:
    def test_add_product(self):
        cart = _make_cart()
        line = cart.add_product("prod-tee", "Classic Tee", 20.0, quantity=2)
        assert len(cart.lines) == 1
        assert line.quantity == 2
        assert line.unit_price == 20.0
        assert line.is_customized is False

    def test_add_product_raises_event(self):
        cart = _make_cart()
        cart.add_product("prod-tee", "Classic Tee", 20.0)
        added = [e for e in cart._events if isinstance(e, CartLineAdded)]
        assert len(added) == 1
        assert added[0].product_id == "prod-tee"
        assert added[0].quantity == 1

    def test_same_product_color_and_size_merges(self):
        cart = _make_cart()
        cart.add_product("prod-tee", "Classic Tee", 20.0, 1, selected_color="Red", selected_size="M")
        cart.add_product("prod-tee", "Classic Tee", 20.0, 2, selected_color="Red", selected_size="M")
        assert len(cart.lines) == 1
        assert cart.lines[0].quantity == 3

    def test_different_size_is_a_new_line(self):
        cart = _make_cart()
        cart.add_product("prod-tee", "Classic Tee", 20.0, 1, selected_size="M")
        cart.add_product("prod-tee", "Classic Tee", 20.0, 1, selected_size="L")
        assert len(cart.lines) == 2

    def test_quantity_must_be_positive(self):
        cart = _make_cart()
        with pytest.raises(ValidationError):
            cart.add_product("prod-tee", "Classic Tee", 20.0, quantity=0)


class TestAddCustomization:
    def test_each_customization_gets_its_own_line(self):
        cart = _make_cart()
        cart.add_customization("cust-design-1", "Custom Tee", 35.0)
        cart.add_customization("cust-design-1", "Custom Tee", 35.0)
        assert len(cart.lines) == 2
        assert all(line.is_customized for line in cart.lines)

    def test_line_cannot_reference_product_and_customization(self):
        cart = _make_cart()
        with pytest.raises(ValidationError):
            cart.add_lines(
                CartLine(
                    product_id="prod-tee",
                    customization_id="cust-design-1",
                    product_name="Both",
                    quantity=1,
                    unit_price=1.0,
                )
            )


class TestUpdateAndRemove:
    def test_update_quantity(self):
        cart = _make_cart()
        line = cart.add_product("prod-tee", "Classic Tee", 20.0)
        cart._events.clear()
        cart.update_quantity(line.id, 4)
        assert cart.lines[0].quantity == 4

        event = cart._events[0]
        assert isinstance(event, CartLineQuantityUpdated)
        assert event.previous_quantity == 1
        assert event.new_quantity == 4

    def test_update_quantity_below_one_is_rejected(self):
        cart = _make_cart()
        line = cart.add_product("prod-tee", "Classic Tee", 20.0)
        with pytest.raises(ValidationError):
            cart.update_quantity(line.id, 0)

    def test_update_unknown_line(self):
        cart = _make_cart()
        with pytest.raises(ValidationError) as exc:
            cart.update_quantity("missing", 2)
        assert "Line not found in cart" in str(exc.value)

    def test_remove_line(self):
        cart = _make_cart()
        line = cart.add_product("prod-tee", "Classic Tee", 20.0)
        cart.remove_line(line.id)
        assert cart.is_empty
        assert isinstance(cart._events[-1], CartLineRemoved)


class TestSubtotalAndClear:
    def test_subtotal(self):
        cart = _make_cart()
        cart.add_product("prod-tee", "Classic Tee", 20.0, quantity=2)
        cart.add_customization("cust-design-1", "Custom Mug", 12.345)
        assert cart.subtotal == Decimal("52.35")

    def test_empty_subtotal(self):
        assert _make_cart().subtotal == Decimal("0.00")

    def test_clear_after_order(self):
        cart = _make_cart()
        cart.add_product("prod-tee", "Classic Tee", 20.0)
        cart.clear(order_id="ord-001")

        assert cart.is_empty
        event = cart._events[-1]
        assert isinstance(event, CartCleared)
        assert event.order_id == "ord-001"
        assert event.reason == "order_placed"

    def test_manual_clear(self):
        cart = _make_cart()
        cart.add_product("prod-tee", "Classic Tee", 20.0)
        cart.clear()
        assert cart._events[-1].reason == "cleared"
        assert cart._events[-1].order_id is None
