"""Best-effort order notifications.

The notifier renders an order template and hands it to the email channel.
It never raises: a failed send is logged and reported as ``False`` so the
caller can record the outcome, and nothing about the order changes.
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal

import structlog

from notifications.channel import NotificationChannel, get_channel
from notifications.templates import get_template
from notifications.templates.order_confirmation import OrderConfirmationTemplate
from notifications.templates.order_status_update import OrderStatusUpdateTemplate

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SnapshotItem:
    product_name: str
    quantity: int
    unit_price: Decimal
    selected_color: str | None = None
    selected_size: str | None = None


@dataclass(frozen=True)
class OrderSnapshot:
    """Everything a customer-facing order message needs, already resolved to display values."""

    order_id: str
    recipient_email: str
    recipient_name: str
    order_date: str
    subtotal: Decimal
    shipping_cost: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal
    shipping_address: str
    payment_method: str
    delivery_slot: str
    phone_number: str | None = None
    items: list[SnapshotItem] = field(default_factory=list)

    def as_context(self) -> dict:
        return asdict(self)


class Notifier:
    def __init__(self, channel=None) -> None:
        self._channel = channel

    @property
    def channel(self):
        return self._channel or get_channel(NotificationChannel.EMAIL.value)

    def send_confirmation(self, snapshot: OrderSnapshot) -> bool:
        return self._send(OrderConfirmationTemplate.notification_type, snapshot.as_context(), snapshot)

    def send_status_update(self, snapshot: OrderSnapshot, status: str) -> bool:
        context = {**snapshot.as_context(), "status": status}
        return self._send(OrderStatusUpdateTemplate.notification_type, context, snapshot)

    def _send(self, notification_type: str, context: dict, snapshot: OrderSnapshot) -> bool:
        if not snapshot.recipient_email:
            logger.warning("No recipient email, skipping notification", order_id=snapshot.order_id)
            return False

        try:
            content = get_template(notification_type).render(context)
            result = self.channel.send(
                to=snapshot.recipient_email,
                subject=content["subject"],
                body=content["body"],
                html_body=content.get("html_body"),
                to_name=snapshot.recipient_name,
            )
        except Exception as e:
            logger.error(
                "Notification dispatch failed",
                notification_type=notification_type,
                order_id=snapshot.order_id,
                error=str(e),
            )
            return False

        if result.get("status") != "sent":
            logger.warning(
                "Notification was not sent",
                notification_type=notification_type,
                order_id=snapshot.order_id,
                error=result.get("error", "Unknown dispatch error"),
            )
            return False

        logger.info(
            "Notification sent",
            notification_type=notification_type,
            order_id=snapshot.order_id,
            message_id=result.get("message_id"),
        )
        return True
