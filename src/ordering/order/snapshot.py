"""Customer-facing view of an order for notifications."""

from notifications.notifier import OrderSnapshot, SnapshotItem
from ordering.delivery.port import format_slot_text
from ordering.order.order import Order
from ordering.pricing.money import to_money


def order_snapshot(order: Order) -> OrderSnapshot:
    created = order.created_at
    order_date = f"{created:%B} {created.day}, {created.year}" if created else ""

    return OrderSnapshot(
        order_id=str(order.id),
        recipient_email=order.email,
        recipient_name=order.full_name or "",
        order_date=order_date,
        subtotal=to_money(order.subtotal),
        shipping_cost=to_money(order.shipping_amount),
        tax=to_money(order.tax),
        discount=to_money(order.discount_amount),
        total=to_money(order.total),
        shipping_address=order.shipping_address or "",
        payment_method=order.payment_method,
        delivery_slot=format_slot_text(order.delivery_slot_id),
        phone_number=order.phone_number,
        items=[
            SnapshotItem(
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=to_money(item.price_at_time),
                selected_color=item.selected_color,
                selected_size=item.selected_size,
            )
            for item in order.items
        ],
    )
