"""Checkout settlement: turns a submitted checkout into a placed order.

Steps, in order:

1. stock availability for every catalog line (nothing is reserved yet),
2. discount re-validation against the current subtotal, then pricing,
3. one repository write of the order, its items and its settlement tasks,
4. the settlement tasks: stock reservation per line, discount usage commit,
   confirmation email.

Step 3 is the durability boundary. A failure before it marks the checkout
``Failed``, leaves the cart alone and raises to the caller. Once the order is
written it is reported as placed: the checkout is ``Settled`` and the cart is
cleared whatever the settlement tasks do; their failures are retried and
dead-lettered on the order.

Each submission carries an idempotency key, and the order identity is
derived from it. Submitting again with a key that already produced an order,
or submitting a settled checkout, returns the existing order. Two submissions
racing on the same key collide on the order write; the second one gets the
first one's order.

Settlement is not dispatched through ``current_domain.process``: a command
handler would defer every write to the end of its unit of work, and the
order write must be committed before any side effect runs.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from inventory.stock import InsufficientStock, StockReservationGate
from ordering.cart.cart import Cart
from ordering.checkout.checkout import Checkout, CheckoutStatus
from ordering.checkout.tasks import SettlementTaskProcessor
from ordering.checkout.timeouts import bounded, step_timeout
from ordering.delivery.port import slot_display
from ordering.discount.discount import Discount
from ordering.discount.validator import apply, validate
from ordering.errors import (
    CheckoutError,
    DiscountRejected,
    DiscountRejection,
    EmptyCart,
    PersistenceFailed,
    SubmissionFailed,
)
from ordering.order.order import Order
from ordering.pricing.config import load_pricing_config
from ordering.pricing.engine import quote
from ordering.pricing.money import ZERO
from ordering.utils.logging import bind_checkout_context, clear_checkout_context

logger = structlog.get_logger(__name__)


@dataclass
class SettlementResult:
    order_id: str
    checkout_id: str
    idempotency_key: str
    record: dict
    replayed: bool = False
    dead_lettered: list[str] = field(default_factory=list)


class CheckoutSettlement:
    def __init__(self, gate=None, notifier=None, pricing_config=None, timeout=None, max_attempts=None):
        self.gate = gate or StockReservationGate()
        self._pricing_config = pricing_config
        self._timeout = timeout
        self.processor = SettlementTaskProcessor(
            gate=self.gate,
            notifier=notifier,
            timeout=timeout,
            max_attempts=max_attempts,
        )

    @property
    def pricing_config(self):
        return self._pricing_config or load_pricing_config()

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else step_timeout()

    # -------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------
    def submit(self, checkout_id, idempotency_key: str | None = None) -> SettlementResult:
        bind_checkout_context(checkout_id=str(checkout_id))
        try:
            return self._submit(checkout_id, idempotency_key)
        finally:
            clear_checkout_context()

    def _submit(self, checkout_id, idempotency_key):
        checkout_repo = current_domain.repository_for(Checkout)
        checkout = checkout_repo.get(checkout_id)

        if CheckoutStatus(checkout.status) == CheckoutStatus.SETTLED:
            logger.info("Checkout already settled", order_id=str(checkout.order_id))
            return self._result(checkout, current_domain.repository_for(Order).get(checkout.order_id), replayed=True)

        if not idempotency_key:
            if CheckoutStatus(checkout.status) == CheckoutStatus.SUBMITTING and checkout.idempotency_key:
                idempotency_key = checkout.idempotency_key
            else:
                idempotency_key = f"{checkout.id}:{uuid4().hex}"

        existing = self._order_for_key(idempotency_key)
        if existing is not None:
            if str(existing.checkout_id) != str(checkout.id):
                raise ValidationError({"idempotency_key": ["Idempotency key was already used for another checkout"]})
            logger.info("Duplicate submission", idempotency_key=idempotency_key, order_id=str(existing.id))
            if existing.settlement_pending:
                self.processor.process(existing)
            self._settle(checkout, existing)
            return self._result(checkout, existing, replayed=True)

        resuming = CheckoutStatus(checkout.status) == CheckoutStatus.SUBMITTING
        checkout.begin_submission(idempotency_key)
        if not resuming:
            try:
                checkout_repo.add(checkout)
            except ExpectedVersionError:
                logger.info("Checkout changed by a concurrent submission, re-reading", idempotency_key=idempotency_key)
                return self._submit(checkout_id, idempotency_key)
        bind_checkout_context(idempotency_key=idempotency_key)

        try:
            order, placed = self._place_order(checkout)
        except (CheckoutError, InsufficientStock) as exc:
            self._fail(checkout, exc)
            raise
        except Exception as exc:
            logger.error("Unexpected failure before the order was written", error=str(exc))
            failure = SubmissionFailed(exc)
            self._fail(checkout, failure)
            raise failure from exc

        if not placed:
            # A concurrent submission with the same key wrote the order first
            # and settles it.
            if str(order.checkout_id) != str(checkout.id):
                raise ValidationError({"idempotency_key": ["Idempotency key was already used for another checkout"]})
            logger.info("Duplicate submission", idempotency_key=idempotency_key, order_id=str(order.id))
            return self._result(checkout, order, replayed=True)

        bind_checkout_context(order_id=str(order.id))
        logger.info("Order placed", total=order.total, items=len(order.items))

        self.processor.process(order)
        self._settle(checkout, order)

        return self._result(checkout, order)

    # -------------------------------------------------------------------
    # Steps before the durability boundary
    # -------------------------------------------------------------------
    def _place_order(self, checkout: Checkout) -> tuple[Order, bool]:
        """Write the order for the checkout's key.

        Returns the order and whether this call wrote it. The order identity
        is derived from the idempotency key, so a second writer for the same
        key collides and gets the order that was written first.
        """
        cart = current_domain.repository_for(Cart).get(checkout.cart_id)
        if cart.is_empty:
            raise EmptyCart()

        bounded("check_stock", self.gate.ensure_available, list(cart.lines), timeout=self.timeout)

        subtotal = cart.subtotal
        discount_amount = self._current_discount(checkout, subtotal)
        config = self.pricing_config
        price = quote(subtotal, config, checkout.shipping_region, discount_amount)

        order = Order.place(
            customer_id=checkout.customer_id,
            lines=cart.lines,
            quote=price,
            idempotency_key=checkout.idempotency_key,
            tenant_id=config.tenant_id,
            checkout_id=checkout.id,
            address_id=checkout.address_id,
            shipping_address=checkout.shipping_address,
            shipping_region=checkout.shipping_region,
            delivery_slot_id=checkout.delivery_slot_id,
            delivery_slot=slot_display(checkout.delivery_slot_id),
            payment_method=checkout.payment_method,
            order_notes=checkout.order_notes,
            email=checkout.contact_email,
            phone_number=checkout.phone_number,
            full_name=checkout.full_name,
            discount_code=checkout.discount_code if discount_amount > ZERO else None,
            discount_id=checkout.discount_id if discount_amount > ZERO else None,
        )

        repo = current_domain.repository_for(Order)
        try:
            repo.add(order)
        except Exception as exc:
            placed = self._order_for_key(order.idempotency_key)
            if placed is not None:
                return placed, False
            logger.error("Order could not be persisted", error=str(exc))
            raise PersistenceFailed() from exc

        return order, True

    def _current_discount(self, checkout: Checkout, subtotal):
        """Re-validate the applied code and price it against the subtotal being ordered."""
        if not checkout.has_discount:
            return ZERO

        try:
            discount = current_domain.repository_for(Discount).get(checkout.discount_id)
        except ObjectNotFoundError:
            raise DiscountRejected(DiscountRejection.NOT_FOUND, code=checkout.discount_code)
        validate(discount, datetime.now(UTC), subtotal)
        amount = apply(discount, subtotal)

        if float(amount) != checkout.discount_amount:
            logger.info(
                "Discount recomputed for current subtotal",
                code=discount.code,
                applied_amount=checkout.discount_amount,
                current_amount=float(amount),
            )
        return amount

    def _order_for_key(self, idempotency_key: str) -> Order | None:
        repo = current_domain.repository_for(Order)
        matches = repo._dao.query.filter(idempotency_key=idempotency_key).all().items
        if not matches:
            return None
        return repo.get(matches[0].id)

    # -------------------------------------------------------------------
    # Outcomes
    # -------------------------------------------------------------------
    def _fail(self, checkout: Checkout, exc) -> None:
        checkout.fail(getattr(exc, "message", str(exc)), error_code=getattr(exc, "code", None))
        if isinstance(exc, DiscountRejected):
            checkout.remove_discount()
        current_domain.repository_for(Checkout).add(checkout)
        logger.warning("Checkout submission failed", error_code=getattr(exc, "code", None), reason=str(exc))

    def _settle(self, checkout: Checkout, order: Order) -> None:
        checkout_repo = current_domain.repository_for(Checkout)
        if CheckoutStatus(checkout.status) != CheckoutStatus.SUBMITTING:
            checkout.begin_submission(order.idempotency_key)
        checkout.settle(order.id)
        try:
            checkout_repo.add(checkout)
        except ExpectedVersionError:
            current = checkout_repo.get(checkout.id)
            if CheckoutStatus(current.status) != CheckoutStatus.SETTLED:
                raise
            logger.info("Checkout already settled by a concurrent submission", order_id=str(order.id))
            return

        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.get(checkout.cart_id)
        if not cart.is_empty:
            cart.clear(order_id=order.id)
            cart_repo.add(cart)

    def _result(self, checkout: Checkout, order: Order, replayed=False) -> SettlementResult:
        return SettlementResult(
            order_id=str(order.id),
            checkout_id=str(checkout.id),
            idempotency_key=order.idempotency_key,
            record=order.to_record(),
            replayed=replayed,
            dead_lettered=[task.kind for task in order.dead_lettered_tasks],
        )
