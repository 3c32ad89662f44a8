"""Checkout aggregate: one customer's attempt to turn a cart into an order.

State Machine:
    CollectingDelivery → CollectingPayment → Submitting → Settled
                       ←  (back to delivery)             ↘ Failed → Submitting (retry)

Delivery needs an address and a slot; payment needs a name, a phone number
and an email (the account email unless another is given). Cash on delivery
is the only method that can be settled. A discount code can be applied or
removed at any point before submission.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.checkout.events import (
    CheckoutDiscountApplied,
    CheckoutDiscountRemoved,
    CheckoutFailed,
    CheckoutSettled,
    CheckoutStarted,
    CheckoutSubmitted,
)
from ordering.domain import ordering
from ordering.errors import MissingAddress, MissingContactDetails, MissingSlot, UnsupportedPaymentMethod

SETTLEABLE_PAYMENT_METHODS = {"cash"}


class CheckoutStatus(Enum):
    COLLECTING_DELIVERY = "CollectingDelivery"
    COLLECTING_PAYMENT = "CollectingPayment"
    SUBMITTING = "Submitting"
    SETTLED = "Settled"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    CheckoutStatus.COLLECTING_DELIVERY: {CheckoutStatus.COLLECTING_PAYMENT},
    CheckoutStatus.COLLECTING_PAYMENT: {CheckoutStatus.COLLECTING_DELIVERY, CheckoutStatus.SUBMITTING},
    CheckoutStatus.SUBMITTING: {CheckoutStatus.SETTLED, CheckoutStatus.FAILED},
    CheckoutStatus.FAILED: {CheckoutStatus.SUBMITTING, CheckoutStatus.COLLECTING_DELIVERY},
    CheckoutStatus.SETTLED: set(),  # Terminal
}


@ordering.aggregate
class Checkout:
    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    account_email = String(max_length=254)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.COLLECTING_DELIVERY.value)

    # Delivery
    address_id = Identifier()
    shipping_address = Text()
    shipping_region = String(max_length=100)
    delivery_slot_id = String(max_length=255)

    # Payment
    full_name = String(max_length=255)
    phone_number = String(max_length=50)
    email = String(max_length=254)
    payment_method = String(max_length=50, default="cash")
    order_notes = Text()

    # Discount, as priced when the code was applied
    discount_code = String(max_length=50)
    discount_id = Identifier()
    discount_type = String(max_length=20)
    discount_value = Float()
    discount_amount = Float(default=0.0)

    # Submission
    idempotency_key = String(max_length=255)
    submission_attempts = Integer(default=0)
    order_id = Identifier()
    failure_reason = String(max_length=1000)
    failure_code = String(max_length=50)

    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, cart_id, customer_id, account_email=None, address=None):
        """Open a checkout for a cart, preselecting ``address`` when one is given."""
        now = datetime.now(UTC)
        checkout = cls(
            cart_id=cart_id,
            customer_id=customer_id,
            account_email=account_email,
            status=CheckoutStatus.COLLECTING_DELIVERY.value,
            payment_method="cash",
            created_at=now,
            updated_at=now,
        )
        if address is not None:
            checkout.address_id = address.id
            checkout.shipping_address = address.format()
            checkout.shipping_region = address.state

        checkout.raise_(
            CheckoutStarted(
                checkout_id=str(checkout.id),
                cart_id=str(cart_id),
                customer_id=str(customer_id),
                address_id=checkout.address_id,
                started_at=now,
            )
        )
        return checkout

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _assert_status(self, *allowed, action):
        current = CheckoutStatus(self.status)
        if current not in allowed:
            raise ValidationError({"status": [f"Cannot {action} while checkout is {current.value}"]})

    def _transition(self, target):
        current = CheckoutStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})
        self.status = target.value
        self.updated_at = datetime.now(UTC)

    @property
    def has_discount(self) -> bool:
        return bool(self.discount_id)

    @property
    def contact_email(self) -> str | None:
        return self.email or self.account_email

    # -------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------
    def select_address(self, address_id, shipping_address, shipping_region):
        self._assert_status(CheckoutStatus.COLLECTING_DELIVERY, action="change the address")
        self.address_id = address_id
        self.shipping_address = shipping_address
        self.shipping_region = shipping_region
        self.updated_at = datetime.now(UTC)

    def select_delivery_slot(self, slot_id):
        self._assert_status(CheckoutStatus.COLLECTING_DELIVERY, action="change the delivery slot")
        self.delivery_slot_id = slot_id
        self.updated_at = datetime.now(UTC)

    def continue_to_payment(self):
        self._assert_status(CheckoutStatus.COLLECTING_DELIVERY, action="continue to payment")
        if not self.address_id:
            raise MissingAddress()
        if not self.delivery_slot_id:
            raise MissingSlot()
        self._transition(CheckoutStatus.COLLECTING_PAYMENT)

    def back_to_delivery(self):
        self._assert_status(CheckoutStatus.COLLECTING_PAYMENT, CheckoutStatus.FAILED, action="go back to delivery")
        self._transition(CheckoutStatus.COLLECTING_DELIVERY)

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def provide_contact_details(self, full_name, phone_number, email=None, payment_method="cash", order_notes=None):
        self._assert_status(
            CheckoutStatus.COLLECTING_PAYMENT,
            CheckoutStatus.FAILED,
            action="change contact details",
        )
        payment_method = (payment_method or "cash").strip().lower()
        if payment_method not in SETTLEABLE_PAYMENT_METHODS:
            raise UnsupportedPaymentMethod(payment_method)

        email = (email or "").strip() or self.account_email
        missing = [
            name
            for name, value in (("full_name", full_name), ("phone_number", phone_number), ("email", email))
            if not (value or "").strip()
        ]
        if missing:
            raise MissingContactDetails(missing)

        self.full_name = full_name.strip()
        self.phone_number = phone_number.strip()
        self.email = email
        self.payment_method = payment_method
        self.order_notes = order_notes
        self.updated_at = datetime.now(UTC)

    def missing_contact_details(self) -> list[str]:
        return [
            name
            for name, value in (
                ("full_name", self.full_name),
                ("phone_number", self.phone_number),
                ("email", self.contact_email),
            )
            if not value
        ]

    # -------------------------------------------------------------------
    # Discount
    # -------------------------------------------------------------------
    def apply_discount(self, applied):
        """Record an ``AppliedDiscount`` returned by the discount validator."""
        self._assert_status(
            CheckoutStatus.COLLECTING_DELIVERY,
            CheckoutStatus.COLLECTING_PAYMENT,
            CheckoutStatus.FAILED,
            action="apply a discount code",
        )
        self.discount_code = applied.code
        self.discount_id = applied.discount_id
        self.discount_type = applied.discount_type
        self.discount_value = applied.value
        self.discount_amount = float(applied.amount)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CheckoutDiscountApplied(
                checkout_id=str(self.id),
                discount_id=str(applied.discount_id),
                code=applied.code,
                discount_amount=self.discount_amount,
            )
        )

    def remove_discount(self):
        if not self.has_discount:
            return

        self._assert_status(
            CheckoutStatus.COLLECTING_DELIVERY,
            CheckoutStatus.COLLECTING_PAYMENT,
            CheckoutStatus.FAILED,
            action="remove the discount code",
        )
        code = self.discount_code
        self.discount_code = None
        self.discount_id = None
        self.discount_type = None
        self.discount_value = None
        self.discount_amount = 0.0
        self.updated_at = datetime.now(UTC)

        self.raise_(CheckoutDiscountRemoved(checkout_id=str(self.id), code=code))

    # -------------------------------------------------------------------
    # Submission
    # -------------------------------------------------------------------
    def begin_submission(self, idempotency_key):
        """Enter ``Submitting``.

        A checkout left in ``Submitting`` (e.g. by a crash) may be resumed
        with the same idempotency key.
        """
        current = CheckoutStatus(self.status)
        if current == CheckoutStatus.SUBMITTING and self.idempotency_key == idempotency_key:
            return

        self._assert_status(CheckoutStatus.COLLECTING_PAYMENT, CheckoutStatus.FAILED, action="submit")
        if not self.address_id:
            raise MissingAddress()
        if not self.delivery_slot_id:
            raise MissingSlot()
        missing = self.missing_contact_details()
        if missing:
            raise MissingContactDetails(missing)
        if self.payment_method not in SETTLEABLE_PAYMENT_METHODS:
            raise UnsupportedPaymentMethod(self.payment_method)

        self._transition(CheckoutStatus.SUBMITTING)
        self.idempotency_key = idempotency_key
        self.submission_attempts = (self.submission_attempts or 0) + 1
        self.failure_reason = None
        self.failure_code = None

        self.raise_(
            CheckoutSubmitted(
                checkout_id=str(self.id),
                idempotency_key=idempotency_key,
                submitted_at=self.updated_at,
            )
        )

    def settle(self, order_id):
        self._transition(CheckoutStatus.SETTLED)
        self.order_id = order_id

        self.raise_(CheckoutSettled(checkout_id=str(self.id), order_id=str(order_id), settled_at=self.updated_at))

    def fail(self, reason, error_code=None):
        self._transition(CheckoutStatus.FAILED)
        self.failure_reason = str(reason)[:1000]
        self.failure_code = error_code

        self.raise_(
            CheckoutFailed(
                checkout_id=str(self.id),
                reason=self.failure_reason,
                error_code=error_code,
                failed_at=self.updated_at,
            )
        )
