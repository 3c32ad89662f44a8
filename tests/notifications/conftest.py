from decimal import Decimal

import pytest
from notifications.channel import NotificationChannel, get_channel
from notifications.notifier import OrderSnapshot, SnapshotItem


@pytest.fixture()
def email():
    adapter = get_channel(NotificationChannel.EMAIL.value)
    adapter.reset()
    return adapter


@pytest.fixture()
def snapshot():
    return OrderSnapshot(
        order_id="a1b2c3d4-0000-0000-0000-000000000000",
        recipient_email="jane@example.com",
        recipient_name="Jane Doe",
        order_date="June 1, 2030",
        subtotal=Decimal("60.00"),
        shipping_cost=Decimal("6.00"),
        tax=Decimal("4.80"),
        discount=Decimal("6.00"),
        total=Decimal("64.80"),
        shipping_address="12 Main St, Apt 4, Springfield, IL 62701",
        payment_method="cash",
        delivery_slot="Saturday, June 1, 2030 | 9:00 AM - 11:00 AM",
        phone_number="555-0100",
        items=[
            SnapshotItem("Classic Tee", 2, Decimal("20.00"), selected_color="Blue", selected_size="M"),
            SnapshotItem("Custom Mug", 1, Decimal("20.00")),
        ],
    )
