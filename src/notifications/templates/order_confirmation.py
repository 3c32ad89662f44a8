"""Order confirmation template: sent when an order is placed."""

from notifications.channel import NotificationChannel
from notifications.templates.formatting import discount, items_table, items_text, money, payment_method_text


class OrderConfirmationTemplate:
    notification_type = "OrderConfirmation"
    default_channels = [NotificationChannel.EMAIL.value]

    @staticmethod
    def render(context: dict) -> dict:
        order_ref = str(context.get("order_id", "N/A"))[:8]
        items = context.get("items", [])
        totals = (
            f"Subtotal: {money(context.get('subtotal'))}\n"
            f"Shipping: {money(context.get('shipping_cost'))}\n"
            f"Tax: {money(context.get('tax'))}\n"
            f"Discount: {discount(context.get('discount'))}\n"
            f"Order Total: {money(context.get('total'))}"
        )
        return {
            "subject": f"Order #{order_ref} Confirmed",
            "body": (
                f"Hi {context.get('recipient_name') or 'there'},\n\n"
                "Thank You for Your Order!\n"
                "We've received your order and will begin processing it shortly. "
                "You'll receive updates as your order status changes.\n\n"
                f"Order #{order_ref} placed on {context.get('order_date', '')}\n\n"
                f"{items_text(items)}\n\n"
                f"{totals}\n\n"
                f"Shipping address: {context.get('shipping_address') or 'No shipping address provided'}\n"
                f"Payment method: {payment_method_text(context.get('payment_method'))}\n"
                f"Delivery slot: {context.get('delivery_slot') or 'Standard Delivery'}\n"
                f"Phone: {context.get('phone_number') or 'Not provided'}\n"
            ),
            "html_body": items_table(items),
        }
