"""Checkout error taxonomy.

Every failure that can stop a checkout attempt before the order is
persisted is a ``CheckoutError`` carrying a stable ``code`` (used by the API
layer and in logs) and a human-readable message tied to the failing step.
Rule violations inside aggregates keep using Protean's ``ValidationError``.
"""

from enum import Enum


class CheckoutError(Exception):
    code = "checkout_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    def default_message(self) -> str:
        return "The checkout could not be completed"

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


# ---------------------------------------------------------------------------
# Selection errors: block advancing past delivery / payment collection
# ---------------------------------------------------------------------------
class SelectionError(CheckoutError):
    code = "selection_error"


class MissingAddress(SelectionError):
    code = "missing_address"

    def default_message(self) -> str:
        return "Please select a delivery address"


class MissingSlot(SelectionError):
    code = "missing_slot"

    def default_message(self) -> str:
        return "Please select a delivery time slot"


class MissingContactDetails(SelectionError):
    code = "missing_contact_details"

    def __init__(self, missing_fields: list[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(f"Missing required contact details: {', '.join(self.missing_fields)}")


class UnsupportedPaymentMethod(SelectionError):
    code = "unsupported_payment_method"

    def __init__(self, payment_method: str):
        self.payment_method = payment_method
        super().__init__(f"Payment method '{payment_method}' cannot be settled; only cash on delivery is supported")


# ---------------------------------------------------------------------------
# Validation errors: abort submission before any durable write
# ---------------------------------------------------------------------------
class EmptyCart(CheckoutError):
    code = "empty_cart"

    def default_message(self) -> str:
        return "Your cart is empty"


# ---------------------------------------------------------------------------
# Discount errors: reject the code, never an in-progress order
# ---------------------------------------------------------------------------
class DiscountRejection(Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    NOT_YET_VALID = "not_yet_valid"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"
    USAGE_EXHAUSTED = "usage_exhausted"


_DISCOUNT_MESSAGES = {
    DiscountRejection.NOT_FOUND: "This discount code doesn't exist",
    DiscountRejection.INACTIVE: "This discount code is inactive",
    DiscountRejection.NOT_YET_VALID: "This discount code is not active yet",
    DiscountRejection.EXPIRED: "This discount code has expired",
    DiscountRejection.BELOW_MINIMUM: "Your order does not reach the minimum amount for this discount code",
    DiscountRejection.USAGE_EXHAUSTED: "This discount code has reached its maximum usage limit",
}


class DiscountRejected(CheckoutError):
    code = "discount_rejected"

    def __init__(self, reason: DiscountRejection, code: str | None = None, message: str | None = None):
        self.reason = reason
        self.discount_code = code
        super().__init__(message or _DISCOUNT_MESSAGES[reason])

    def to_dict(self) -> dict:
        return {**super().to_dict(), "reason": self.reason.value, "discount_code": self.discount_code}


# ---------------------------------------------------------------------------
# Infrastructure errors
# ---------------------------------------------------------------------------
class PersistenceFailed(CheckoutError):
    code = "persistence_failed"

    def default_message(self) -> str:
        return "There was an error processing your order. Please try again."


class StepTimeout(CheckoutError):
    code = "step_timeout"

    def __init__(self, step: str, timeout: float):
        self.step = step
        self.timeout = timeout
        super().__init__(f"Step '{step}' did not complete within {timeout:g}s")


class SubmissionFailed(CheckoutError):
    """An unexpected failure in a step before the order was written."""

    code = "submission_failed"

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__()

    def default_message(self) -> str:
        return "We couldn't place your order right now. Please try again."

    def to_dict(self) -> dict:
        return {**super().to_dict(), "cause": type(self.cause).__name__}
