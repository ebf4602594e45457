from __future__ import annotations
from fastapi import APIRouter, Depends

from app.api.deps import get_order_service
from app.api.schemas.common import ErrorResponse, SuccessResponse
from app.services.order_service import OrderService

router = APIRouter(prefix="/api/v1/payment", tags=["payment"])


@router.get(
    "/method",
    response_model=SuccessResponse,
    responses={502: {"model": ErrorResponse, "description": "Payment provider error"}},
    summary="List payment methods available for a sample amount",
)
async def get_payment_method(service: OrderService = Depends(get_order_service)):
    result = await service.get_payment_methods()
    return SuccessResponse(message="Payment method retrieved successfully", data=result)
