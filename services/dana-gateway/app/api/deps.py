from __future__ import annotations
from fastapi import Request

from app.services.merchant_service import MerchantService
from app.services.order_service import OrderService


# Services are built once at startup (see app.main) and hung off app.state
def get_order_service(request: Request) -> OrderService:
    return request.app.state.order_service


def get_merchant_service(request: Request) -> MerchantService:
    return request.app.state.merchant_service
