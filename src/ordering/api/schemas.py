"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str

    model_config = {"json_schema_extra": {"examples": [{"customer_id": "cust-001"}]}}


class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    selected_color: str | None = None
    selected_size: str | None = None


class AddCustomizedItemRequest(BaseModel):
    customization_id: str
    product_name: str
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    selected_color: str | None = None
    selected_size: str | None = None


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class StartCheckoutRequest(BaseModel):
    cart_id: str
    customer_id: str
    account_email: str | None = None


class SelectAddressRequest(BaseModel):
    address_id: str


class SelectDeliverySlotRequest(BaseModel):
    slot_id: str

    model_config = {"json_schema_extra": {"examples": [{"slot_id": "2024-06-01_10:00 AM - 12:00 PM"}]}}


class ContactDetailsRequest(BaseModel):
    full_name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    payment_method: str = "cash"
    order_notes: str | None = None


class ApplyDiscountRequest(BaseModel):
    code: str


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class LineIdResponse(BaseModel):
    line_id: str


class CheckoutIdResponse(BaseModel):
    checkout_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class CartLineResponse(BaseModel):
    line_id: str
    product_id: str | None = None
    customization_id: str | None = None
    product_name: str
    quantity: int
    unit_price: float
    selected_color: str | None = None
    selected_size: str | None = None


class CartResponse(BaseModel):
    cart_id: str
    customer_id: str
    lines: list[CartLineResponse]
    subtotal: float


class CheckoutResponse(BaseModel):
    checkout_id: str
    cart_id: str
    status: str
    address_id: str | None = None
    shipping_address: str | None = None
    delivery_slot_id: str | None = None
    full_name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    payment_method: str | None = None
    discount_code: str | None = None
    discount_amount: float = 0.0
    order_id: str | None = None
    failure_reason: str | None = None


class AppliedDiscountResponse(BaseModel):
    code: str
    discount_type: str
    value: float
    discount_id: str
    amount: float


class SettlementResponse(BaseModel):
    order_id: str
    idempotency_key: str
    replayed: bool
    order: dict
    dead_lettered: list[str] = []


class OrderResponse(BaseModel):
    order_id: str
    status: str
    record: dict
    settlement_pending: bool
