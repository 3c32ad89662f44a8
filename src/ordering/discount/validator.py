"""Discount validation, application and usage commit.

``apply_code`` is what a checkout calls when the customer enters a code; it
never changes the discount. ``commit_usage`` is the only write path for
``used_count`` and runs after an order has been persisted.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.discount.discount import Discount, as_utc, normalize_code
from ordering.errors import DiscountRejected, DiscountRejection
from ordering.pricing.engine import discount_amount
from ordering.pricing.money import to_money

logger = structlog.get_logger(__name__)

COMMIT_ATTEMPTS = 50


@dataclass(frozen=True)
class AppliedDiscount:
    code: str
    discount_type: str
    value: float
    discount_id: str
    amount: Decimal

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "discount_type": self.discount_type,
            "value": self.value,
            "discount_id": self.discount_id,
            "amount": float(self.amount),
        }


def resolve(code) -> Discount:
    """Look up a discount by its normalized code."""
    normalized = normalize_code(code)
    if not normalized:
        raise DiscountRejected(DiscountRejection.NOT_FOUND, code=normalized)

    repo = current_domain.repository_for(Discount)
    matches = repo._dao.query.filter(code=normalized).all().items
    if not matches:
        raise DiscountRejected(DiscountRejection.NOT_FOUND, code=normalized)

    return repo.get(matches[0].id)


def validate(discount: Discount, now: datetime, subtotal) -> None:
    """Raise ``DiscountRejected`` unless the discount can be used right now for this subtotal."""
    now = as_utc(now)

    if not discount.is_active:
        raise DiscountRejected(DiscountRejection.INACTIVE, code=discount.code)

    if discount.valid_from and now < as_utc(discount.valid_from):
        raise DiscountRejected(DiscountRejection.NOT_YET_VALID, code=discount.code)

    if discount.valid_until and now > as_utc(discount.valid_until):
        raise DiscountRejected(DiscountRejection.EXPIRED, code=discount.code)

    if discount.is_exhausted:
        raise DiscountRejected(DiscountRejection.USAGE_EXHAUSTED, code=discount.code)

    if to_money(subtotal) < to_money(discount.min_order_amount):
        raise DiscountRejected(
            DiscountRejection.BELOW_MINIMUM,
            code=discount.code,
            message=f"This discount code requires a minimum order of ${to_money(discount.min_order_amount)}",
        )


def apply(discount: Discount, subtotal) -> Decimal:
    """Discount amount for a subtotal, capped at ``max_discount`` and at the subtotal."""
    return discount_amount(subtotal, discount.discount_type, discount.value, discount.max_discount)


def apply_code(code, subtotal, now: datetime | None = None) -> AppliedDiscount:
    """Resolve, validate and price a customer-entered code."""
    discount = resolve(code)
    validate(discount, now or datetime.now(UTC), subtotal)

    return AppliedDiscount(
        code=discount.code,
        discount_type=discount.discount_type,
        value=discount.value,
        discount_id=str(discount.id),
        amount=apply(discount, subtotal),
    )


def commit_usage(discount_id, order_id, attempts: int = COMMIT_ATTEMPTS) -> int:
    """Count one redemption of a discount for an order and return the new ``used_count``.

    The write is version-checked: when another redemption lands between the
    read and the write, Protean raises ``ExpectedVersionError`` and the cap is
    re-checked against a fresh read. Committing the same order twice counts
    it once.
    """
    repo = current_domain.repository_for(Discount)

    for attempt in range(1, attempts + 1):
        try:
            discount = repo.get(discount_id)
        except ObjectNotFoundError:
            raise DiscountRejected(DiscountRejection.NOT_FOUND)

        if not discount.redeem(order_id):
            logger.info("Discount usage already committed", discount_id=str(discount_id), order_id=str(order_id))
            return discount.used_count

        try:
            repo.add(discount)
        except ExpectedVersionError:
            if attempt == attempts:
                raise
            logger.info("Discount changed concurrently, retrying", discount_id=str(discount_id), attempt=attempt)
            continue

        logger.info(
            "Discount usage committed",
            discount_id=str(discount_id),
            code=discount.code,
            order_id=str(order_id),
            used_count=discount.used_count,
        )
        return discount.used_count
