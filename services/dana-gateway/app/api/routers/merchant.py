from __future__ import annotations
from fastapi import APIRouter, Depends

from app.api.deps import get_merchant_service
from app.api.schemas.merchant import MerchantInfoResponse
from app.api.schemas.common import ErrorResponse
from app.services.merchant_service import MerchantService

router = APIRouter(prefix="/api/v1/merchant", tags=["merchant"])

MERCHANT_RESPONSES = {
    400: {"model": ErrorResponse, "description": "No merchant id in path or configuration"},
    502: {"model": ErrorResponse, "description": "Payment provider error"},
}


@router.get(
    "/info",
    response_model=MerchantInfoResponse,
    response_model_exclude_none=True,
    responses=MERCHANT_RESPONSES,
    summary="Merchant balances for the configured merchant",
)
async def get_default_merchant_info(service: MerchantService = Depends(get_merchant_service)):
    return await service.get_merchant_info(None)


@router.get(
    "/info/{merchant_id}",
    response_model=MerchantInfoResponse,
    response_model_exclude_none=True,
    responses=MERCHANT_RESPONSES,
    summary="Merchant balances",
)
async def get_merchant_info(merchant_id: str, service: MerchantService = Depends(get_merchant_service)):
    return await service.get_merchant_info(merchant_id)
