"""Order status update template: sent when an order moves along fulfillment."""

from notifications.channel import NotificationChannel
from notifications.templates.formatting import money

STATUS_MESSAGES = {
    "pending": (
        "Your Order is Pending",
        "We have received your order and are preparing to process it.",
    ),
    "processing": (
        "Your Order is Being Processed",
        "Good news! We're currently processing your order and preparing your items.",
    ),
    "shipping": (
        "Your Order is on the Way",
        "Your order has been shipped and is on its way to you!",
    ),
    "delivered": (
        "Your Order has Been Delivered",
        "Your order has been delivered. We hope you enjoy your purchase!",
    ),
    "canceled": (
        "Your Order has Been Canceled",
        "Your order has been canceled. If you did not request this cancellation, please contact our support team.",
    ),
}

DEFAULT_MESSAGE = ("Order Status Update", "There has been an update to your order.")


class OrderStatusUpdateTemplate:
    notification_type = "OrderStatusUpdate"
    default_channels = [NotificationChannel.EMAIL.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = str(context.get("order_id", "N/A"))[:8]
        title, message = STATUS_MESSAGES.get(context.get("status"), DEFAULT_MESSAGE)
        return {
            "subject": f"Order #{order_ref}: {title}",
            "body": (
                f"Hi {context.get('recipient_name') or 'there'},\n\n"
                f"{title}\n{message}\n\n"
                f"Order #{order_ref}\n"
                f"Order Total: {money(context.get('total'))}\n"
            ),
        }
