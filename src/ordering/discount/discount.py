"""Discount aggregate: a promotional code with a validity window and a usage cap.

The discount is looked up by its normalized code when a customer applies it
to a checkout. Its only mutable shared state is ``used_count``, and that is
only ever changed through ``redeem``, which re-checks the cap and records the
redeeming order so a retried redemption is not counted twice.
"""

import re
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from ordering.discount.events import DiscountCreated, DiscountDeactivated, DiscountRedeemed
from ordering.domain import ordering
from ordering.errors import DiscountRejected, DiscountRejection
from ordering.pricing.engine import DiscountType

_NON_ALNUM = re.compile(r"[^A-Z0-9]")


def normalize_code(code) -> str:
    """Trim and upper-case a customer-entered code."""
    return str(code or "").strip().upper()


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@ordering.entity(part_of="Discount")
class DiscountRedemption:
    order_id = Identifier(required=True)
    redeemed_at = DateTime()


@ordering.aggregate
class Discount:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    value = Float(required=True, min_value=0.0)
    usage_limit = Integer(min_value=0)  # None or 0 means unlimited
    used_count = Integer(default=0, min_value=0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount = Float(min_value=0.0)
    valid_from = DateTime()
    valid_until = DateTime()
    is_active = Boolean(default=True)
    redemptions = HasMany(DiscountRedemption)
    created_at = DateTime()

    @invariant.post
    def usage_must_not_exceed_limit(self):
        if self.is_limited and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": ["Discount usage cannot exceed its usage limit"]})

    @invariant.post
    def percentage_must_not_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and (self.value or 0) > 100:
            raise ValidationError({"value": ["A percentage discount cannot exceed 100"]})

    @invariant.post
    def validity_window_must_be_ordered(self):
        if self.valid_from and self.valid_until and as_utc(self.valid_from) > as_utc(self.valid_until):
            raise ValidationError({"valid_until": ["Discount cannot expire before it starts"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        discount_type,
        value,
        usage_limit=None,
        min_order_amount=0.0,
        max_discount=None,
        valid_from=None,
        valid_until=None,
    ):
        normalized = normalize_code(code)
        if not normalized or _NON_ALNUM.search(normalized):
            raise ValidationError({"code": ["Discount codes must be letters and digits only"]})

        discount = cls(
            code=normalized,
            discount_type=DiscountType(discount_type).value,
            value=value,
            usage_limit=usage_limit,
            used_count=0,
            min_order_amount=min_order_amount or 0.0,
            max_discount=max_discount,
            valid_from=valid_from,
            valid_until=valid_until,
            is_active=True,
            created_at=datetime.now(UTC),
        )
        discount.raise_(
            DiscountCreated(
                discount_id=str(discount.id),
                code=normalized,
                discount_type=discount.discount_type,
                value=value,
                usage_limit=usage_limit,
            )
        )
        return discount

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_limited(self) -> bool:
        return bool(self.usage_limit)

    @property
    def is_exhausted(self) -> bool:
        return self.is_limited and (self.used_count or 0) >= self.usage_limit

    def has_redemption_for(self, order_id) -> bool:
        return any(str(r.order_id) == str(order_id) for r in self.redemptions)

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def redeem(self, order_id) -> bool:
        """Count one use of this code for an order.

        Returns ``False`` when the order has already redeemed the code.
        Raises ``DiscountRejected`` when the usage cap has been reached.
        """
        if self.has_redemption_for(order_id):
            return False

        if self.is_exhausted:
            raise DiscountRejected(DiscountRejection.USAGE_EXHAUSTED, code=self.code)

        now = datetime.now(UTC)
        self.add_redemptions(DiscountRedemption(order_id=str(order_id), redeemed_at=now))
        self.used_count = (self.used_count or 0) + 1

        self.raise_(
            DiscountRedeemed(
                discount_id=str(self.id),
                code=self.code,
                order_id=str(order_id),
                used_count=self.used_count,
                redeemed_at=now,
            )
        )
        return True

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Discount is already inactive"]})

        self.is_active = False
        self.raise_(DiscountDeactivated(discount_id=str(self.id), code=self.code))
