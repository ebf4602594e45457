from __future__ import annotations
from fastapi import APIRouter, Depends

from app.api.deps import get_order_service
from app.api.schemas.common import ErrorResponse, SuccessResponse
from app.api.schemas.orders import CreateOrderRequest
from app.core.errors import ValidationError
from app.services.order_service import OrderService

router = APIRouter(prefix="/api/v1/order", tags=["order"])

ORDER_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    502: {"model": ErrorResponse, "description": "Payment provider error"},
    504: {"model": ErrorResponse, "description": "Payment provider timeout"},
}


@router.post("", response_model=SuccessResponse, responses=ORDER_RESPONSES, summary="Create an order")
async def create_order(
    payload: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
):
    # pay_option_details present -> custom checkout, else hosted checkout
    result = await service.create_order(payload.to_params())
    return SuccessResponse(message="Order created successfully", data=result)


@router.post(
    "/custom",
    response_model=SuccessResponse,
    responses=ORDER_RESPONSES,
    summary="Create an order with an explicit payment method",
)
async def create_order_custom_checkout(
    payload: CreateOrderRequest,
    service: OrderService = Depends(get_order_service),
):
    if not payload.pay_option_details:
        raise ValidationError(
            "pay_option_details is required for custom checkout",
            details="Custom checkout requires pay_option_details to specify payment method",
        )
    result = await service.create_order_custom_checkout(payload.to_params())
    return SuccessResponse(message="Order created successfully (Custom Checkout)", data=result)


# Registered before /{partner_reference_no} so it is not captured as a reference
@router.get(
    "/payment/method",
    response_model=SuccessResponse,
    responses=ORDER_RESPONSES,
    include_in_schema=False,
)
async def get_payment_method_legacy(service: OrderService = Depends(get_order_service)):
    result = await service.get_payment_methods()
    return SuccessResponse(message="Payment method retrieved successfully", data=result)


@router.get(
    "/{partner_reference_no}",
    response_model=SuccessResponse,
    responses=ORDER_RESPONSES,
    summary="Query an order by partner reference",
)
async def get_order(partner_reference_no: str, service: OrderService = Depends(get_order_service)):
    result = await service.get_order(partner_reference_no)
    return SuccessResponse(message="Order retrieved successfully", data=result)
