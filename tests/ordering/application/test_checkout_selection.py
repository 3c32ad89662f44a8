"""Application tests for the checkout steps before submission."""

import pytest
from ordering.cart.items import AddToCart
from ordering.cart.management import CreateCart
from ordering.checkout.checkout import Checkout, CheckoutStatus
from ordering.checkout.selection import (
    ApplyDiscountCode,
    BackToDelivery,
    ContinueToPayment,
    ProvideContactDetails,
    RemoveDiscountCode,
    SelectAddress,
    SelectDeliverySlot,
    StartCheckout,
)
from ordering.discount.management import CreateDiscount
from ordering.errors import DiscountRejected, MissingSlot
from protean import current_domain
from protean.exceptions import ValidationError


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _checkout(checkout_id):
    return current_domain.repository_for(Checkout).get(checkout_id)


@pytest.fixture()
def cart_id(catalog):
    cart_id = _process(CreateCart(customer_id="cust-001"))
    _process(AddToCart(cart_id=cart_id, product_id="prod-tee", quantity=3))
    return cart_id


class TestStartCheckout:
    def test_preselects_default_address(self, cart_id, address_book):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        checkout = _checkout(checkout_id)
        assert checkout.address_id == "addr-home"
        assert checkout.shipping_address == "12 Main St, Apt 4, Springfield, IL 62701"

    def test_customer_without_addresses(self, cart_id):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        assert _checkout(checkout_id).address_id is None

    def test_cart_must_belong_to_customer(self, cart_id):
        with pytest.raises(ValidationError):
            _process(StartCheckout(cart_id=cart_id, customer_id="cust-002"))


class TestDeliveryStep:
    def test_select_another_address(self, cart_id, address_book):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        _process(SelectAddress(checkout_id=checkout_id, address_id="addr-work"))
        checkout = _checkout(checkout_id)
        assert checkout.address_id == "addr-work"
        assert checkout.shipping_region == "OR"

    def test_cannot_use_someone_elses_address(self, cart_id, address_book):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        with pytest.raises(ValidationError):
            _process(SelectAddress(checkout_id=checkout_id, address_id="addr-other"))

    def test_unknown_slot(self, cart_id, slots):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        with pytest.raises(ValidationError):
            _process(SelectDeliverySlot(checkout_id=checkout_id, slot_id="2001-01-01_9:00 AM - 11:00 AM"))

    def test_unavailable_slot(self, cart_id, slots, slot_id):
        slots.mark_unavailable(slot_id)
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        with pytest.raises(ValidationError) as exc:
            _process(SelectDeliverySlot(checkout_id=checkout_id, slot_id=slot_id))
        assert "no longer available" in str(exc.value)

    def test_continue_without_slot(self, cart_id, address_book):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        with pytest.raises(MissingSlot):
            _process(ContinueToPayment(checkout_id=checkout_id))

    def test_continue_and_back(self, cart_id, address_book, slot_id):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        _process(SelectDeliverySlot(checkout_id=checkout_id, slot_id=slot_id))
        _process(ContinueToPayment(checkout_id=checkout_id))
        assert _checkout(checkout_id).status == CheckoutStatus.COLLECTING_PAYMENT.value

        _process(BackToDelivery(checkout_id=checkout_id))
        assert _checkout(checkout_id).status == CheckoutStatus.COLLECTING_DELIVERY.value


class TestPaymentStep:
    def test_contact_details(self, ready_checkout):
        checkout_id = ready_checkout()
        _process(
            ProvideContactDetails(
                checkout_id=checkout_id,
                full_name="Jane Q. Doe",
                phone_number="555-0199",
                email="jq@example.com",
                order_notes="Leave at the door",
            )
        )
        checkout = _checkout(checkout_id)
        assert checkout.full_name == "Jane Q. Doe"
        assert checkout.contact_email == "jq@example.com"
        assert checkout.order_notes == "Leave at the door"


class TestDiscountStep:
    def test_apply_and_remove(self, cart_id):
        _process(CreateDiscount(code="SAVE10", discount_type="percentage", value=10.0))
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))

        applied = _process(ApplyDiscountCode(checkout_id=checkout_id, code="save10"))
        assert applied["amount"] == 6.0
        assert _checkout(checkout_id).discount_amount == 6.0

        _process(RemoveDiscountCode(checkout_id=checkout_id))
        assert not _checkout(checkout_id).has_discount

    def test_rejected_code_leaves_checkout_untouched(self, cart_id):
        checkout_id = _process(StartCheckout(cart_id=cart_id, customer_id="cust-001"))
        with pytest.raises(DiscountRejected):
            _process(ApplyDiscountCode(checkout_id=checkout_id, code="NOPE"))
        assert not _checkout(checkout_id).has_discount
