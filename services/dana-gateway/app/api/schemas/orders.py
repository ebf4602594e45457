from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field

from app.models.order import CreateOrderParams, Money, PayOptionDetail, UrlParam


class MoneyRequest(BaseModel):
    value: str
    currency: str

    def to_money(self) -> Money:
        return Money(value=self.value, currency=self.currency)


class PayOptionDetailRequest(BaseModel):
    pay_method: str
    pay_option: str
    trans_amount: MoneyRequest
    fee_amount: Optional[MoneyRequest] = None
    card_token: Optional[str] = None
    merchant_token: Optional[str] = None


class UrlParamRequest(BaseModel):
    url: str
    type: str = Field(description="PAY_RETURN or NOTIFICATION")
    is_deeplink: str = Field(description='"true"/"false" or "Y"/"N"')


class CreateOrderRequest(BaseModel):
    """Inbound order body. Without pay_option_details the order uses hosted checkout."""

    partner_reference_no: str
    merchant_id: Optional[str] = None
    amount: MoneyRequest
    pay_option_details: List[PayOptionDetailRequest] = []
    url_params: List[UrlParamRequest]
    sub_merchant_id: Optional[str] = None
    external_store_id: Optional[str] = None
    valid_up_to: Optional[str] = None
    disabled_pay_methods: Optional[str] = None

    def to_params(self) -> CreateOrderParams:
        return CreateOrderParams(
            partner_reference_no=self.partner_reference_no,
            merchant_id=self.merchant_id or None,
            amount=self.amount.to_money(),
            pay_option_details=[
                PayOptionDetail(
                    pay_method=pod.pay_method,
                    pay_option=pod.pay_option,
                    trans_amount=pod.trans_amount.to_money(),
                    fee_amount=pod.fee_amount.to_money() if pod.fee_amount else None,
                    card_token=pod.card_token,
                    merchant_token=pod.merchant_token,
                )
                for pod in self.pay_option_details
            ],
            url_params=[
                UrlParam(url=up.url, type=up.type, is_deeplink=up.is_deeplink)
                for up in self.url_params
            ],
            sub_merchant_id=self.sub_merchant_id,
            external_store_id=self.external_store_id,
            valid_up_to=self.valid_up_to,
            disabled_pay_methods=self.disabled_pay_methods,
        )

