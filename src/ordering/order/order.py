"""Order aggregate (CQRS): a placed order and its settlement outbox.

An order is written exactly once by checkout settlement, together with its
items and the ordered list of side effects that must follow placement
(stock reservation per line, discount usage, confirmation email). Those
side effects are ``SettlementTask`` entities processed after the write, so
the order and the obligations it created are always persisted together.

Financial fields are fixed at placement. Afterwards only ``status`` and task
bookkeeping change.

Status Machine:
    pending → processing → shipping → delivered
    pending | processing → canceled
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import NAMESPACE_URL, uuid5

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from ordering.domain import ordering
from ordering.order.events import (
    OrderPlaced,
    OrderStatusChanged,
    SettlementTaskCompleted,
    SettlementTaskDeadLettered,
)
from ordering.pricing.money import to_money


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPING = "shipping"
    DELIVERED = "delivered"
    CANCELED = "canceled"


class SettlementTaskKind(Enum):
    RESERVE_STOCK = "reserve_stock"
    COMMIT_DISCOUNT_USAGE = "commit_discount_usage"
    SEND_CONFIRMATION = "send_confirmation"


class SettlementTaskStatus(Enum):
    PENDING = "pending"
    DONE = "done"
    DEAD_LETTERED = "dead_lettered"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPING, OrderStatus.CANCELED},
    OrderStatus.SHIPPING: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELED: set(),  # Terminal
}

_ORDER_NAMESPACE = uuid5(NAMESPACE_URL, "storefront/orders")


def order_id_for(idempotency_key: str) -> str:
    """The order identity for a submission key; one key can only ever name one order."""
    return str(uuid5(_ORDER_NAMESPACE, idempotency_key))


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A copy of a cart line with the price the customer saw.

    ``price_at_time`` is never recomputed from the catalog.
    """

    product_id = Identifier()
    customization_id = Identifier()
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    price_at_time = Float(required=True, min_value=0.0)
    selected_color = String(max_length=50)
    selected_size = String(max_length=50)

    def to_record(self) -> dict:
        record = {
            "product_id": str(self.product_id) if self.product_id else None,
            "customization_id": str(self.customization_id) if self.customization_id else None,
            "quantity": self.quantity,
            "price_at_time": self.price_at_time,
        }
        if self.selected_color:
            record["selected_color"] = self.selected_color
        if self.selected_size:
            record["selected_size"] = self.selected_size
        return record


@ordering.entity(part_of="Order")
class SettlementTask:
    sequence = Integer(required=True)
    kind = String(required=True, choices=SettlementTaskKind)
    payload = Text()  # JSON
    status = String(choices=SettlementTaskStatus, default=SettlementTaskStatus.PENDING.value)
    attempts = Integer(default=0)
    last_error = String(max_length=1000)
    completed_at = DateTime()

    @property
    def data(self) -> dict:
        return json.loads(self.payload) if self.payload else {}

    @property
    def is_pending(self) -> bool:
        return self.status == SettlementTaskStatus.PENDING.value


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    checkout_id = Identifier()
    idempotency_key = String(required=True, max_length=255, unique=True)
    items = HasMany(OrderItem)
    settlement_tasks = HasMany(SettlementTask)
    address_id = Identifier()
    shipping_address = Text()
    shipping_region = String(max_length=100)
    delivery_slot_id = String(max_length=255)
    delivery_slot = String(max_length=255)
    payment_method = String(max_length=50, default="cash")
    order_notes = Text()
    email = String(max_length=254)
    phone_number = String(max_length=50)
    full_name = String(max_length=255)
    tenant_id = String(max_length=100)
    subtotal = Float(required=True, min_value=0.0)
    shipping_amount = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    discount_code = String(max_length=50)
    discount_id = Identifier()
    total = Float(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    settlement_pending = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_reconcile(self):
        expected = to_money(
            to_money(self.subtotal)
            + to_money(self.shipping_amount)
            + to_money(self.tax)
            - to_money(self.discount_amount)
        )
        if to_money(self.total) != expected:
            raise ValidationError({"total": [f"Order total {self.total} does not reconcile to {expected}"]})

    @invariant.post
    def order_must_have_items(self):
        if not self.items:
            raise ValidationError({"items": ["An order must have at least one item"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        customer_id,
        lines,
        quote,
        idempotency_key,
        tenant_id=None,
        checkout_id=None,
        address_id=None,
        shipping_address=None,
        shipping_region=None,
        delivery_slot_id=None,
        delivery_slot=None,
        payment_method="cash",
        order_notes=None,
        email=None,
        phone_number=None,
        full_name=None,
        discount_code=None,
        discount_id=None,
    ):
        """Build an order from cart lines and a price quote, with its settlement tasks.

        Args:
            lines: Cart lines (anything exposing product_id, customization_id,
                   product_name, quantity, unit_price, selected_color, selected_size).
            quote: A ``PriceQuote`` from the pricing engine.
        """
        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=line.product_id,
                customization_id=line.customization_id,
                product_name=line.product_name,
                quantity=line.quantity,
                price_at_time=line.unit_price,
                selected_color=line.selected_color,
                selected_size=line.selected_size,
            )
            for line in lines
        ]

        order = cls(
            id=order_id_for(idempotency_key),
            customer_id=customer_id,
            checkout_id=checkout_id,
            idempotency_key=idempotency_key,
            items=items,
            address_id=address_id,
            shipping_address=shipping_address,
            shipping_region=shipping_region,
            delivery_slot_id=delivery_slot_id,
            delivery_slot=delivery_slot,
            payment_method=payment_method,
            order_notes=order_notes,
            email=email,
            phone_number=phone_number,
            full_name=full_name,
            tenant_id=tenant_id,
            subtotal=float(quote.subtotal),
            shipping_amount=float(quote.shipping_amount),
            tax=float(quote.tax),
            discount_amount=float(quote.discount_amount),
            discount_code=discount_code,
            discount_id=discount_id,
            total=float(quote.total),
            status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        order._schedule_settlement()

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                checkout_id=str(checkout_id) if checkout_id else None,
                subtotal=order.subtotal,
                shipping_amount=order.shipping_amount,
                tax=order.tax,
                discount_amount=order.discount_amount,
                total=order.total,
                discount_code=discount_code,
                item_count=len(items),
                placed_at=now,
            )
        )
        return order

    def _schedule_settlement(self):
        """Queue the side effects of placement, in the order they must run."""
        specs = []
        for item in self.items:
            if item.product_id and not item.customization_id:
                specs.append(
                    (
                        SettlementTaskKind.RESERVE_STOCK,
                        {
                            "product_id": str(item.product_id),
                            "quantity": item.quantity,
                            "reservation_key": f"{self.id}:{item.id}",
                        },
                    )
                )
        if self.discount_id:
            specs.append(
                (
                    SettlementTaskKind.COMMIT_DISCOUNT_USAGE,
                    {"discount_id": str(self.discount_id), "code": self.discount_code},
                )
            )
        specs.append((SettlementTaskKind.SEND_CONFIRMATION, {}))

        for sequence, (kind, payload) in enumerate(specs, start=1):
            self.add_settlement_tasks(
                SettlementTask(
                    sequence=sequence,
                    kind=kind.value,
                    payload=json.dumps(payload),
                    status=SettlementTaskStatus.PENDING.value,
                    attempts=0,
                )
            )

    # -------------------------------------------------------------------
    # Settlement bookkeeping
    # -------------------------------------------------------------------
    def ordered_tasks(self) -> list[SettlementTask]:
        return sorted(self.settlement_tasks, key=lambda task: task.sequence)

    def pending_tasks(self) -> list[SettlementTask]:
        return [task for task in self.ordered_tasks() if task.is_pending]

    @property
    def dead_lettered_tasks(self) -> list[SettlementTask]:
        return [t for t in self.ordered_tasks() if t.status == SettlementTaskStatus.DEAD_LETTERED.value]

    def _task(self, task_id) -> SettlementTask:
        task = next((t for t in self.settlement_tasks if str(t.id) == str(task_id)), None)
        if task is None:
            raise ValidationError({"task_id": ["Settlement task not found"]})
        if not task.is_pending:
            raise ValidationError({"task_id": [f"Settlement task is already {task.status}"]})
        return task

    def complete_task(self, task_id):
        task = self._task(task_id)
        task.attempts = (task.attempts or 0) + 1
        task.status = SettlementTaskStatus.DONE.value
        task.last_error = None
        task.completed_at = datetime.now(UTC)
        self.updated_at = task.completed_at
        self.settlement_pending = any(t.is_pending for t in self.settlement_tasks)

        self.raise_(
            SettlementTaskCompleted(
                order_id=str(self.id),
                task_id=str(task.id),
                kind=task.kind,
                attempts=task.attempts,
            )
        )

    def fail_task(self, task_id, error, max_attempts, permanent=False) -> bool:
        """Record a failed attempt. Returns True when the task was dead-lettered."""
        task = self._task(task_id)
        task.attempts = (task.attempts or 0) + 1
        task.last_error = str(error)[:1000]
        self.updated_at = datetime.now(UTC)

        if permanent or task.attempts >= max_attempts:
            task.status = SettlementTaskStatus.DEAD_LETTERED.value
            self.settlement_pending = any(t.is_pending for t in self.settlement_tasks)
            self.raise_(
                SettlementTaskDeadLettered(
                    order_id=str(self.id),
                    task_id=str(task.id),
                    kind=task.kind,
                    attempts=task.attempts,
                    last_error=task.last_error,
                )
            )
            return True
        return False

    # -------------------------------------------------------------------
    # Status
    # -------------------------------------------------------------------
    def change_status(self, new_status):
        if new_status not in {status.value for status in OrderStatus}:
            raise ValidationError({"status": [f"Unknown order status '{new_status}'"]})

        target = OrderStatus(new_status)
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Persisted record
    # -------------------------------------------------------------------
    def to_record(self) -> dict:
        """The order in the storefront's ``orders`` record shape."""
        return {
            "user_id": str(self.customer_id),
            "total": self.total,
            "status": self.status,
            "address_id": str(self.address_id) if self.address_id else None,
            "delivery_slot_id": self.delivery_slot_id,
            "shipping_address": self.shipping_address,
            "payment_method": self.payment_method,
            "order_notes": self.order_notes,
            "tax": self.tax,
            "discount_amount": self.discount_amount,
            "shipping_amount": self.shipping_amount,
            "items": [item.to_record() for item in self.items],
            "email": self.email,
            "phone_number": self.phone_number,
            "full_name": self.full_name,
            "tenant_id": self.tenant_id,
        }
