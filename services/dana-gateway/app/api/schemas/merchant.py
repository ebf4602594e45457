from __future__ import annotations
from typing import Dict, Optional
from pydantic import BaseModel


class BalanceInfo(BaseModel):
    amount: str
    currency: str


class MerchantBalances(BaseModel):
    deposit_balance: Optional[BalanceInfo] = None
    available_balance: Optional[BalanceInfo] = None
    total_balance: Optional[BalanceInfo] = None


class MerchantResource(BaseModel):
    type: str
    value: str
    description: Optional[str] = None


class MerchantInfoData(BaseModel):
    merchant_id: str
    balances: MerchantBalances
    resources: Dict[str, MerchantResource]


class MerchantInfoMeta(BaseModel):
    request_id: Optional[str] = None
    timestamp: Optional[str] = None
    environment: Optional[str] = None


class MerchantInfoResponse(BaseModel):
    success: bool
    message: str
    data: Optional[MerchantInfoData] = None
    meta: Optional[MerchantInfoMeta] = None
