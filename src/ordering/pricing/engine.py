"""Pricing engine: pure functions from cart subtotal to order totals.

Nothing here touches a repository, the clock or configuration globals; the
tenant's pricing inputs arrive as a ``TenantPricingConfig`` and every result
is a cent-quantized ``Decimal``.

Shipping is deliberately asymmetric. The free-shipping rule only changes what
is *charged* (and displayed); the order always persists the region fee as
``shipping_amount`` and the total always adds that region fee:

    total = subtotal + region_fee + tax - discount

so "free shipping" is informational and does not reduce the total. This
matches the historical order records and is kept for compatibility until
product confirms whether it is intended.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ordering.pricing.config import FREE_SHIPPING_THRESHOLD, TenantPricingConfig
from ordering.pricing.money import ZERO, parse_rate, to_decimal, to_money


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class PriceQuote:
    """Totals for one order.

    ``shipping_amount`` is the region fee that gets persisted;
    ``shipping_charged`` is what the customer is shown as shipping.
    """

    subtotal: Decimal
    shipping_amount: Decimal
    shipping_charged: Decimal
    tax: Decimal
    discount_amount: Decimal
    total: Decimal

    @property
    def free_shipping(self) -> bool:
        return self.shipping_charged == ZERO

    def as_dict(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "shipping_amount": float(self.shipping_amount),
            "shipping_charged": float(self.shipping_charged),
            "tax": float(self.tax),
            "discount_amount": float(self.discount_amount),
            "total": float(self.total),
        }


def shipping_charged(subtotal, region_fee, free_shipping_threshold=FREE_SHIPPING_THRESHOLD) -> Decimal:
    """Shipping shown to the customer: waived at or above the threshold, or when the fee is zero."""
    fee = to_money(region_fee)
    if fee <= ZERO or to_money(subtotal) >= to_money(free_shipping_threshold):
        return ZERO
    return fee


def tax_amount(subtotal, tax_rate) -> Decimal:
    """``round(subtotal * tax_rate, 2)``; a zero, negative or non-numeric rate yields zero."""
    rate = parse_rate(tax_rate)
    if rate is None or rate <= 0:
        return ZERO
    return to_money(to_money(subtotal) * rate)


def percentage_discount(subtotal, percent) -> Decimal:
    """``subtotal * percent / 100``, never negative."""
    rate = parse_rate(percent)
    if rate is None or rate <= 0:
        return ZERO
    return to_money(to_money(subtotal) * rate / Decimal(100))


def discount_amount(subtotal, discount_type, value, max_discount=None) -> Decimal:
    """Discount for a subtotal, capped at ``max_discount`` (if set) and at the subtotal itself."""
    discount_type = DiscountType(discount_type)
    base = to_money(subtotal)

    if discount_type == DiscountType.PERCENTAGE:
        amount = percentage_discount(base, value)
    else:
        parsed = parse_rate(value)
        amount = to_money(parsed) if parsed is not None and parsed > 0 else ZERO

    if max_discount is not None:
        amount = min(amount, to_money(max_discount))

    return max(min(amount, base), ZERO)


def compute(
    subtotal,
    shipping_fee_for_region,
    tax_rate,
    discount_amount=ZERO,
    free_shipping_threshold=FREE_SHIPPING_THRESHOLD,
) -> PriceQuote:
    """Turn a subtotal, region fee, tax rate and discount into final totals."""
    subtotal = to_money(subtotal)
    region_fee = max(to_money(shipping_fee_for_region), ZERO)
    discount = max(to_money(discount_amount), ZERO)
    tax = tax_amount(subtotal, tax_rate)

    return PriceQuote(
        subtotal=subtotal,
        shipping_amount=region_fee,
        shipping_charged=shipping_charged(subtotal, region_fee, free_shipping_threshold),
        tax=tax,
        discount_amount=discount,
        total=to_money(subtotal + region_fee + tax - discount),
    )


def quote(subtotal, config: TenantPricingConfig, region: str | None = None, discount=ZERO) -> PriceQuote:
    """Price a subtotal with a tenant's configuration."""
    return compute(
        subtotal,
        config.shipping_fee_for(region),
        config.tax_rate,
        discount,
        config.free_shipping_threshold,
    )


def line_subtotal(lines) -> Decimal:
    """Sum of ``quantity * unit_price`` over objects exposing those attributes."""
    total = sum((to_decimal(line.unit_price) * int(line.quantity) for line in lines), Decimal("0"))
    return to_money(total)
