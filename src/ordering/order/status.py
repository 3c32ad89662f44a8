"""Order status updates: command, handler and customer notification.

Fulfillment moves an order along its status machine. The customer is told
about each change by email once the change has been committed, on a
best-effort basis: a failed or slow send is logged and never undoes the
status change.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from notifications.notifier import Notifier
from ordering.checkout.timeouts import bounded, step_timeout
from ordering.domain import ordering
from ordering.errors import StepTimeout
from ordering.order.events import OrderStatusChanged
from ordering.order.order import Order
from ordering.order.snapshot import order_snapshot

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.change_status(command.status)
        repo.add(order)

        logger.info("Order status changed", order_id=str(order.id), status=order.status)
        return order.status


@ordering.event_handler(part_of=Order)
class OrderStatusNotifier:
    """Emails the customer after a status change has been committed."""

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        try:
            order = current_domain.repository_for(Order).get(event.order_id)
        except ObjectNotFoundError:
            logger.error("Order for status email not found", order_id=str(event.order_id))
            return

        try:
            bounded(
                "notify_status",
                Notifier().send_status_update,
                order_snapshot(order),
                event.new_status,
                timeout=step_timeout(),
            )
        except StepTimeout:
            logger.warning("Status email timed out", order_id=str(order.id), status=event.new_status)
