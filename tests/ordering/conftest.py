from datetime import date

import pytest
from inventory.catalog import set_catalog
from inventory.catalog.fake_adapter import InMemoryCatalogStore
from notifications.channel import NotificationChannel, get_channel
from ordering.addresses import set_address_book
from ordering.addresses.fake_adapter import InMemoryAddressBook
from ordering.cart.items import AddToCart
from ordering.cart.management import CreateCart
from ordering.checkout.selection import (
    ApplyDiscountCode,
    ContinueToPayment,
    ProvideContactDetails,
    SelectDeliverySlot,
    StartCheckout,
)
from ordering.delivery import set_slot_registry
from ordering.delivery.fake_adapter import InMemoryDeliverySlotRegistry
from protean import current_domain
from protean.integrations.pytest import DomainFixture

SLOT_DATE = date(2030, 6, 1)
SLOT_ID = "2030-06-01_9:00 AM - 11:00 AM"


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Port fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def catalog():
    store = InMemoryCatalogStore()
    store.add_product("prod-tee", "Classic Tee", 20.0, stock=10)
    store.add_product("prod-mug", "Coffee Mug", 12.5, stock=3)
    store.add_product("prod-cap", "Baseball Cap", 15.0, stock=0)
    set_catalog(store)
    return store


@pytest.fixture()
def email():
    adapter = get_channel(NotificationChannel.EMAIL.value)
    adapter.reset()
    return adapter


@pytest.fixture()
def address_book():
    book = InMemoryAddressBook()
    book.add(
        "cust-001",
        "12 Main St",
        "Springfield",
        "IL",
        "62701",
        line2="Apt 4",
        is_default=True,
        address_id="addr-home",
    )
    book.add("cust-001", "99 Market St", "Portland", "OR", "97201", address_id="addr-work")
    book.add("cust-002", "1 Other Rd", "Austin", "TX", "73301", address_id="addr-other")
    set_address_book(book)
    return book


@pytest.fixture()
def slots():
    registry = InMemoryDeliverySlotRegistry(start=SLOT_DATE, days=3)
    set_slot_registry(registry)
    return registry


@pytest.fixture()
def slot_id(slots):
    return SLOT_ID


# ---------------------------------------------------------------------------
# Checkout factory
# ---------------------------------------------------------------------------
@pytest.fixture()
def ready_checkout(catalog, address_book, slots, email):
    """Build a cart with the given lines and walk a checkout up to payment.

    ``lines`` is a list of ``(product_id, quantity)``; returns the checkout id.
    """

    def _build(
        lines=(("prod-tee", 2),),
        discount_code=None,
        customer_id="cust-001",
        account_email="jane@example.com",
    ):
        cart_id = current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)
        for product_id, quantity in lines:
            current_domain.process(
                AddToCart(cart_id=cart_id, product_id=product_id, quantity=quantity),
                asynchronous=False,
            )

        checkout_id = current_domain.process(
            StartCheckout(cart_id=cart_id, customer_id=customer_id, account_email=account_email),
            asynchronous=False,
        )
        current_domain.process(SelectDeliverySlot(checkout_id=checkout_id, slot_id=SLOT_ID), asynchronous=False)
        current_domain.process(ContinueToPayment(checkout_id=checkout_id), asynchronous=False)
        current_domain.process(
            ProvideContactDetails(checkout_id=checkout_id, full_name="Jane Doe", phone_number="555-0100"),
            asynchronous=False,
        )
        if discount_code:
            current_domain.process(ApplyDiscountCode(checkout_id=checkout_id, code=discount_code), asynchronous=False)
        return checkout_id

    return _build
