"""Shared BDD fixtures and step definitions for checkout settlement."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from ordering.checkout.checkout import Checkout
from ordering.discount.discount import Discount
from ordering.discount.management import CreateDiscount
from ordering.order.order import Order
from ordering.pricing.config import TenantPricingConfig
from protean import current_domain
from pytest_bdd import given, parsers, then


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for the exception raised by the last When step."""
    return {"exc": None}


@pytest.fixture()
def submissions():
    return []


def orders():
    return current_domain.repository_for(Order)._dao.query.all().items


def discount_by_code(code):
    return current_domain.repository_for(Discount)._dao.query.filter(code=code).all().items[0]


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('the tenant charges {fee} shipping in "{region}" with a tax rate of {rate}'),
    target_fixture="pricing",
)
def _(fee, region, rate):
    return TenantPricingConfig(region_fees={region: Decimal(fee)}, tax_rate=Decimal(rate))


@given(parsers.cfparse('a checkout for {quantity:d} "{product_id}" ready for payment'), target_fixture="checkout_id")
def _(ready_checkout, quantity, product_id):
    return ready_checkout(lines=[(product_id, quantity)])


@given(parsers.cfparse('a {percent:d} percent discount code "{code}"'))
def _(percent, code):
    current_domain.process(
        CreateDiscount(code=code, discount_type="percentage", value=float(percent)),
        asynchronous=False,
    )


@given(parsers.cfparse('an expired {percent:d} percent discount code "{code}"'))
def _(percent, code):
    current_domain.process(
        CreateDiscount(
            code=code,
            discount_type="percentage",
            value=float(percent),
            valid_until=datetime.now(UTC) - timedelta(days=1),
        ),
        asynchronous=False,
    )


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the order subtotal is {amount:f}"))
def _(submissions, amount):
    assert current_domain.repository_for(Order).get(submissions[-1].order_id).subtotal == amount


@then(parsers.cfparse("the order tax is {amount:f}"))
def _(submissions, amount):
    assert submissions[-1].record["tax"] == amount


@then(parsers.cfparse("the order shipping amount is {amount:f}"))
def _(submissions, amount):
    assert submissions[-1].record["shipping_amount"] == amount


@then(parsers.cfparse("the order discount is {amount:f}"))
def _(submissions, amount):
    assert submissions[-1].record["discount_amount"] == amount


@then(parsers.cfparse("the order total is {amount:f}"))
def _(submissions, amount):
    assert submissions[-1].record["total"] == amount


@then(parsers.cfparse('"{product_id}" stock is {quantity:d}'))
def _(catalog, product_id, quantity):
    assert catalog.available_quantity(product_id) == quantity


@then(parsers.cfparse('the checkout is "{status}"'))
def _(checkout_id, status):
    assert current_domain.repository_for(Checkout).get(checkout_id).status == status


@then("a confirmation email was sent")
def _(email):
    assert len(email.sent_emails) == 1
    assert email.sent_emails[0]["subject"].endswith("Confirmed")


@then("no order is placed")
def _():
    assert orders() == []


@then("only one order is placed")
def _(submissions):
    assert len(orders()) == 1
    assert len({s.order_id for s in submissions}) == 1


@then(parsers.cfparse('the discount code "{code}" has been used {count:d} time'))
def _(code, count):
    assert discount_by_code(code).used_count == count
