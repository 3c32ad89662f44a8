"""FastAPI routes for the Ordering domain: carts, checkouts and orders."""

from contextlib import contextmanager

from fastapi import APIRouter, Header, HTTPException, Response
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from inventory.stock import InsufficientStock
from ordering.api.schemas import (
    AddCustomizedItemRequest,
    AddToCartRequest,
    AppliedDiscountResponse,
    ApplyDiscountRequest,
    CartIdResponse,
    CartLineResponse,
    CartResponse,
    CheckoutIdResponse,
    CheckoutResponse,
    ContactDetailsRequest,
    CreateCartRequest,
    LineIdResponse,
    OrderResponse,
    SelectAddressRequest,
    SelectDeliverySlotRequest,
    SettlementResponse,
    StartCheckoutRequest,
    StatusResponse,
    UpdateCartQuantityRequest,
    UpdateOrderStatusRequest,
)
from ordering.cart.cart import Cart
from ordering.cart.items import AddCustomizedItem, AddToCart, RemoveFromCart, UpdateCartQuantity
from ordering.cart.management import CreateCart
from ordering.checkout.checkout import Checkout
from ordering.checkout.selection import (
    ApplyDiscountCode,
    BackToDelivery,
    ContinueToPayment,
    ProvideContactDetails,
    RemoveDiscountCode,
    SelectAddress,
    SelectDeliverySlot,
    StartCheckout,
)
from ordering.checkout.settlement import CheckoutSettlement
from ordering.errors import (
    CheckoutError,
    DiscountRejected,
    EmptyCart,
    PersistenceFailed,
    SelectionError,
    StepTimeout,
    SubmissionFailed,
)
from ordering.order.order import Order
from ordering.order.status import UpdateOrderStatus

_STATUS_CODES = [
    (SelectionError, 422),
    (EmptyCart, 422),
    (DiscountRejected, 422),
    (PersistenceFailed, 503),
    (SubmissionFailed, 503),
    (StepTimeout, 504),
    (CheckoutError, 400),
]


@contextmanager
def translate_errors():
    """Turn domain failures into HTTP errors that carry the failure code."""
    try:
        yield
    except InsufficientStock as exc:
        raise HTTPException(status_code=409, detail=exc.to_dict())
    except CheckoutError as exc:
        status_code = next(code for error_type, code in _STATUS_CODES if isinstance(exc, error_type))
        raise HTTPException(status_code=status_code, detail=exc.to_dict())
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail={"code": "not_found", "message": str(exc)})
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail={"code": "invalid", "errors": exc.messages})


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    with translate_errors():
        result = current_domain.process(CreateCart(customer_id=body.customer_id), asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str) -> CartResponse:
    with translate_errors():
        cart = current_domain.repository_for(Cart).get(cart_id)
    return CartResponse(
        cart_id=str(cart.id),
        customer_id=str(cart.customer_id),
        lines=[
            CartLineResponse(
                line_id=str(line.id),
                product_id=line.product_id,
                customization_id=line.customization_id,
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                selected_color=line.selected_color,
                selected_size=line.selected_size,
            )
            for line in cart.lines
        ],
        subtotal=float(cart.subtotal),
    )


@cart_router.post("/{cart_id}/items", status_code=201, response_model=LineIdResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> LineIdResponse:
    command = AddToCart(
        cart_id=cart_id,
        product_id=body.product_id,
        quantity=body.quantity,
        selected_color=body.selected_color,
        selected_size=body.selected_size,
    )
    with translate_errors():
        line_id = current_domain.process(command, asynchronous=False)
    return LineIdResponse(line_id=line_id)


@cart_router.post("/{cart_id}/customized-items", status_code=201, response_model=LineIdResponse)
async def add_customized_item(cart_id: str, body: AddCustomizedItemRequest) -> LineIdResponse:
    command = AddCustomizedItem(cart_id=cart_id, **body.model_dump())
    with translate_errors():
        line_id = current_domain.process(command, asynchronous=False)
    return LineIdResponse(line_id=line_id)


@cart_router.put("/{cart_id}/items/{line_id}", response_model=StatusResponse)
async def update_cart_item_quantity(cart_id: str, line_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(cart_id=cart_id, line_id=line_id, new_quantity=body.new_quantity)
    with translate_errors():
        current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{line_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, line_id: str) -> StatusResponse:
    with translate_errors():
        current_domain.process(RemoveFromCart(cart_id=cart_id, line_id=line_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkouts", tags=["checkouts"])


@checkout_router.post("", status_code=201, response_model=CheckoutIdResponse)
async def start_checkout(body: StartCheckoutRequest) -> CheckoutIdResponse:
    command = StartCheckout(
        cart_id=body.cart_id,
        customer_id=body.customer_id,
        account_email=body.account_email,
    )
    with translate_errors():
        checkout_id = current_domain.process(command, asynchronous=False)
    return CheckoutIdResponse(checkout_id=checkout_id)


@checkout_router.get("/{checkout_id}", response_model=CheckoutResponse)
async def get_checkout(checkout_id: str) -> CheckoutResponse:
    with translate_errors():
        checkout = current_domain.repository_for(Checkout).get(checkout_id)
    return CheckoutResponse(
        checkout_id=str(checkout.id),
        cart_id=str(checkout.cart_id),
        status=checkout.status,
        address_id=checkout.address_id,
        shipping_address=checkout.shipping_address,
        delivery_slot_id=checkout.delivery_slot_id,
        full_name=checkout.full_name,
        phone_number=checkout.phone_number,
        email=checkout.contact_email,
        payment_method=checkout.payment_method,
        discount_code=checkout.discount_code,
        discount_amount=checkout.discount_amount or 0.0,
        order_id=checkout.order_id,
        failure_reason=checkout.failure_reason,
    )


@checkout_router.put("/{checkout_id}/address", response_model=StatusResponse)
async def select_address(checkout_id: str, body: SelectAddressRequest) -> StatusResponse:
    with translate_errors():
        current_domain.process(SelectAddress(checkout_id=checkout_id, address_id=body.address_id), asynchronous=False)
    return StatusResponse()


@checkout_router.put("/{checkout_id}/delivery-slot", response_model=StatusResponse)
async def select_delivery_slot(checkout_id: str, body: SelectDeliverySlotRequest) -> StatusResponse:
    with translate_errors():
        current_domain.process(SelectDeliverySlot(checkout_id=checkout_id, slot_id=body.slot_id), asynchronous=False)
    return StatusResponse()


@checkout_router.post("/{checkout_id}/continue", response_model=StatusResponse)
async def continue_to_payment(checkout_id: str) -> StatusResponse:
    with translate_errors():
        current_domain.process(ContinueToPayment(checkout_id=checkout_id), asynchronous=False)
    return StatusResponse()


@checkout_router.post("/{checkout_id}/back", response_model=StatusResponse)
async def back_to_delivery(checkout_id: str) -> StatusResponse:
    with translate_errors():
        current_domain.process(BackToDelivery(checkout_id=checkout_id), asynchronous=False)
    return StatusResponse()


@checkout_router.put("/{checkout_id}/contact", response_model=StatusResponse)
async def provide_contact_details(checkout_id: str, body: ContactDetailsRequest) -> StatusResponse:
    command = ProvideContactDetails(checkout_id=checkout_id, **body.model_dump())
    with translate_errors():
        current_domain.process(command, asynchronous=False)
    return StatusResponse()


@checkout_router.post("/{checkout_id}/discount", response_model=AppliedDiscountResponse)
async def apply_discount_code(checkout_id: str, body: ApplyDiscountRequest) -> AppliedDiscountResponse:
    with translate_errors():
        applied = current_domain.process(ApplyDiscountCode(checkout_id=checkout_id, code=body.code), asynchronous=False)
    return AppliedDiscountResponse(**applied)


@checkout_router.delete("/{checkout_id}/discount", response_model=StatusResponse)
async def remove_discount_code(checkout_id: str) -> StatusResponse:
    with translate_errors():
        current_domain.process(RemoveDiscountCode(checkout_id=checkout_id), asynchronous=False)
    return StatusResponse()


@checkout_router.post("/{checkout_id}/submit", status_code=201, response_model=SettlementResponse)
async def submit_checkout(
    checkout_id: str,
    response: Response,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
) -> SettlementResponse:
    """Place the order.

    Resending with the same ``Idempotency-Key`` returns the order created by
    the first request (status 200) instead of placing another one.
    """
    with translate_errors():
        result = CheckoutSettlement().submit(checkout_id, idempotency_key=idempotency_key)

    if result.replayed:
        response.status_code = 200
    return SettlementResponse(
        order_id=result.order_id,
        idempotency_key=result.idempotency_key,
        replayed=result.replayed,
        order=result.record,
        dead_lettered=result.dead_lettered,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    with translate_errors():
        order = current_domain.repository_for(Order).get(order_id)
    return OrderResponse(
        order_id=str(order.id),
        status=order.status,
        record=order.to_record(),
        settlement_pending=bool(order.settlement_pending),
    )


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    with translate_errors():
        status = current_domain.process(UpdateOrderStatus(order_id=order_id, status=body.status), asynchronous=False)
    return StatusResponse(status=status)
