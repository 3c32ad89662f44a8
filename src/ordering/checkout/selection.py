"""Checkout selection: commands and handler for the steps before submission."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.addresses import get_address_book
from ordering.cart.cart import Cart
from ordering.checkout.checkout import Checkout
from ordering.delivery import get_slot_registry
from ordering.discount.validator import apply_code
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Checkout")
class StartCheckout:
    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    account_email = String(max_length=254)


@ordering.command(part_of="Checkout")
class SelectAddress:
    checkout_id = Identifier(required=True)
    address_id = Identifier(required=True)


@ordering.command(part_of="Checkout")
class SelectDeliverySlot:
    checkout_id = Identifier(required=True)
    slot_id = String(required=True, max_length=255)


@ordering.command(part_of="Checkout")
class ContinueToPayment:
    checkout_id = Identifier(required=True)


@ordering.command(part_of="Checkout")
class BackToDelivery:
    checkout_id = Identifier(required=True)


@ordering.command(part_of="Checkout")
class ProvideContactDetails:
    checkout_id = Identifier(required=True)
    full_name = String(max_length=255)
    phone_number = String(max_length=50)
    email = String(max_length=254)  # Defaults to the account email
    payment_method = String(max_length=50, default="cash")
    order_notes = Text()


@ordering.command(part_of="Checkout")
class ApplyDiscountCode:
    checkout_id = Identifier(required=True)
    code = String(required=True, max_length=50)


@ordering.command(part_of="Checkout")
class RemoveDiscountCode:
    checkout_id = Identifier(required=True)


@ordering.command_handler(part_of=Checkout)
class CheckoutSelectionHandler:
    @handle(StartCheckout)
    def start_checkout(self, command):
        cart = current_domain.repository_for(Cart).get(command.cart_id)
        if str(cart.customer_id) != str(command.customer_id):
            raise ValidationError({"cart_id": ["Cart does not belong to this customer"]})

        checkout = Checkout.start(
            cart_id=command.cart_id,
            customer_id=command.customer_id,
            account_email=command.account_email,
            address=get_address_book().default_for(str(command.customer_id)),
        )
        current_domain.repository_for(Checkout).add(checkout)

        logger.info("Checkout started", checkout_id=str(checkout.id), cart_id=str(command.cart_id))
        return str(checkout.id)

    @handle(SelectAddress)
    def select_address(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)

        address = get_address_book().get(str(command.address_id))
        if address is None or address.customer_id != str(checkout.customer_id):
            raise ValidationError({"address_id": ["Address not found"]})

        checkout.select_address(address.id, address.format(), address.state)
        repo.add(checkout)

    @handle(SelectDeliverySlot)
    def select_delivery_slot(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)

        slot = get_slot_registry().get(command.slot_id)
        if slot is None:
            raise ValidationError({"slot_id": ["Delivery slot not found"]})
        if not slot.available:
            raise ValidationError({"slot_id": ["Delivery slot is no longer available"]})

        checkout.select_delivery_slot(slot.id)
        repo.add(checkout)

    @handle(ContinueToPayment)
    def continue_to_payment(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)
        checkout.continue_to_payment()
        repo.add(checkout)

    @handle(BackToDelivery)
    def back_to_delivery(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)
        checkout.back_to_delivery()
        repo.add(checkout)

    @handle(ProvideContactDetails)
    def provide_contact_details(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)
        checkout.provide_contact_details(
            full_name=command.full_name,
            phone_number=command.phone_number,
            email=command.email,
            payment_method=command.payment_method,
            order_notes=command.order_notes,
        )
        repo.add(checkout)

    @handle(ApplyDiscountCode)
    def apply_discount_code(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)
        cart = current_domain.repository_for(Cart).get(checkout.cart_id)

        applied = apply_code(command.code, cart.subtotal)
        checkout.apply_discount(applied)
        repo.add(checkout)

        logger.info(
            "Discount code applied",
            checkout_id=str(checkout.id),
            code=applied.code,
            discount_amount=float(applied.amount),
        )
        return applied.as_dict()

    @handle(RemoveDiscountCode)
    def remove_discount_code(self, command):
        repo = current_domain.repository_for(Checkout)
        checkout = repo.get(command.checkout_id)
        checkout.remove_discount()
        repo.add(checkout)
