# app/services/order_service.py
from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from app.clients.dana import (
    CONSULT_PAY_PATH,
    CREATE_ORDER_PATH,
    QUERY_PAYMENT_PATH,
    DanaClient,
)
from app.core.errors import ValidationError
from app.core.metrics import inc_orders_created
from app.models.order import CheckoutProfile, CreateOrderParams, Money, PayOptionDetail, UrlParam
from app.utils.money import format_money
from app.utils.timeutils import default_valid_up_to

log = logging.getLogger("order")

SOURCE_PLATFORM = "IPG"
WEB_TERMINAL = "WEB"
SCENARIO_API = "API"
SCENARIO_REDIRECT = "REDIRECT"
QUERY_PAYMENT_SERVICE_CODE = "54"
SAMPLE_CONSULT_AMOUNT = "100000"

DEEPLINK_YES = "Y"
DEEPLINK_NO = "N"
NOTIFICATION = "NOTIFICATION"


def normalize_url_params(params: List[UrlParam]) -> List[UrlParam]:
    """Canonicalize isDeeplink flags and reject non-http(s) callback URLs."""
    normalized: List[UrlParam] = []
    for i, up in enumerate(params):
        flag = (up.is_deeplink or "").strip().upper()
        if flag == "TRUE":
            flag = DEEPLINK_YES
        elif flag == "FALSE":
            flag = DEEPLINK_NO
        elif flag not in (DEEPLINK_YES, DEEPLINK_NO):
            flag = DEEPLINK_NO

        # Notifications are server-to-server webhooks, never deeplinks
        if (up.type or "").upper() == NOTIFICATION:
            flag = DEEPLINK_NO

        url = (up.url or "").strip()
        if not url.startswith(("http://", "https://")):
            raise ValidationError(
                f"invalid URL format for urlParams[{i}]: must start with http:// or https://",
                details={"index": i, "url": url},
            )
        normalized.append(UrlParam(url=url, type=up.type, is_deeplink=flag))
    return normalized


def format_params_money(m: Money) -> Money:
    return Money(value=format_money(m.value, m.currency), currency=m.currency)


def _money_total(details: List[PayOptionDetail]) -> Decimal:
    total = Decimal(0)
    for pod in details:
        if pod.trans_amount.currency != "IDR":
            continue
        try:
            total += Decimal(pod.trans_amount.value)
        except InvalidOperation:
            continue
    return total


def _pay_option_to_wire(pod: PayOptionDetail) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "payMethod": pod.pay_method,
        "payOption": pod.pay_option,
        "transAmount": pod.trans_amount.to_wire(),
    }
    if pod.fee_amount is not None:
        entry["feeAmount"] = pod.fee_amount.to_wire()
    if pod.card_token is not None:
        entry["cardToken"] = pod.card_token
    if pod.merchant_token is not None:
        entry["merchantToken"] = pod.merchant_token
    return entry


def build_order_body(
    params: CreateOrderParams,
    merchant_id: str,
    amount: Money,
    url_params: List[UrlParam],
    valid_up_to: str,
    additional_info: Dict[str, Any],
    pay_option_details: Optional[List[PayOptionDetail]] = None,
) -> Dict[str, Any]:
    """Assemble the create-order body in the fixed wire field order.

    Optional fields are left out entirely when absent.
    """
    body: Dict[str, Any] = {
        "partnerReferenceNo": params.partner_reference_no,
        "merchantId": merchant_id,
        "amount": amount.to_wire(),
    }
    if pay_option_details:
        body["payOptionDetails"] = [_pay_option_to_wire(pod) for pod in pay_option_details]
    body["urlParams"] = [
        {"url": up.url, "type": up.type, "isDeeplink": up.is_deeplink} for up in url_params
    ]
    if params.sub_merchant_id is not None:
        body["subMerchantId"] = params.sub_merchant_id
    if params.external_store_id is not None:
        body["externalStoreId"] = params.external_store_id
    body["validUpTo"] = valid_up_to
    if params.disabled_pay_methods is not None:
        body["disabledPayMethods"] = params.disabled_pay_methods
    body["additionalInfo"] = additional_info
    return body


class OrderService:
    def __init__(self, client: DanaClient, profile: CheckoutProfile) -> None:
        self.client = client
        self.profile = profile

    def _env_info(self, extended: bool = False) -> Dict[str, str]:
        env_info = {
            "sourcePlatform": SOURCE_PLATFORM,
            "terminalType": WEB_TERMINAL,
            "orderTerminalType": WEB_TERMINAL,
        }
        if extended:
            env_info.update(self.profile.env_info)
        return env_info

    def _validate_common(self, params: CreateOrderParams) -> str:
        if not params.partner_reference_no:
            raise ValidationError("partnerReferenceNo is required")
        merchant_id = params.merchant_id or self.profile.merchant_id
        if not merchant_id:
            raise ValidationError("merchantId is required")
        if not params.url_params:
            raise ValidationError("urlParams is required and cannot be empty")
        return merchant_id

    async def create_order(self, params: CreateOrderParams) -> Any:
        if params.pay_option_details:
            return await self.create_order_custom_checkout(params)
        return await self.create_order_hosted_checkout(params)

    def build_custom_checkout_body(self, params: CreateOrderParams) -> Dict[str, Any]:
        """Direct selection: the caller names the payment instrument."""
        merchant_id = self._validate_common(params)
        if not params.pay_option_details:
            raise ValidationError("payOptionDetails is required for custom checkout")

        amount = format_params_money(params.amount)
        pay_options = [
            PayOptionDetail(
                pay_method=pod.pay_method,
                pay_option=pod.pay_option,
                trans_amount=format_params_money(pod.trans_amount),
                fee_amount=format_params_money(pod.fee_amount) if pod.fee_amount else None,
                card_token=pod.card_token,
                merchant_token=pod.merchant_token,
            )
            for pod in params.pay_option_details
        ]

        if amount.currency == "IDR":
            total = _money_total(pay_options)
            try:
                main_amount = Decimal(amount.value)
            except InvalidOperation:
                main_amount = None
            if main_amount is not None and total > 0 and total != main_amount:
                log.warning(
                    "total transAmount %s does not match order amount %s",
                    total,
                    main_amount,
                )

        valid_up_to = params.valid_up_to or default_valid_up_to()
        url_params = normalize_url_params(params.url_params)

        # Buyer object is required even when every field is empty
        order = {
            "orderTitle": self.profile.title_for(params.partner_reference_no),
            "scenario": SCENARIO_API,
            "merchantTransType": self.profile.merchant_trans_type,
            "buyer": dict(self.profile.buyer),
        }
        additional_info = {
            "mcc": self.profile.mcc,
            "envInfo": self._env_info(extended=True),
            "order": order,
        }
        return build_order_body(
            params,
            merchant_id,
            amount,
            url_params,
            valid_up_to,
            additional_info,
            pay_option_details=pay_options,
        )

    def build_hosted_checkout_body(self, params: CreateOrderParams) -> Dict[str, Any]:
        """Hosted checkout: the buyer picks the instrument on DANA's page."""
        merchant_id = self._validate_common(params)
        amount = format_params_money(params.amount)
        valid_up_to = params.valid_up_to or default_valid_up_to()
        url_params = normalize_url_params(params.url_params)

        additional_info = {
            "mcc": self.profile.mcc,
            "envInfo": self._env_info(),
            "order": {
                "orderTitle": self.profile.title_for(params.partner_reference_no),
                "scenario": SCENARIO_REDIRECT,
            },
        }
        return build_order_body(params, merchant_id, amount, url_params, valid_up_to, additional_info)

    async def create_order_custom_checkout(self, params: CreateOrderParams) -> Any:
        body = self.build_custom_checkout_body(params)
        result = await self.client.post_signed("create_order_custom", CREATE_ORDER_PATH, body)
        inc_orders_created("custom")
        return result

    async def create_order_hosted_checkout(self, params: CreateOrderParams) -> Any:
        body = self.build_hosted_checkout_body(params)
        result = await self.client.post_signed("create_order_hosted", CREATE_ORDER_PATH, body)
        inc_orders_created("hosted")
        return result

    async def get_payment_methods(self) -> Any:
        body = {
            "merchantId": self.profile.merchant_id or "",
            "amount": Money(format_money(SAMPLE_CONSULT_AMOUNT, "IDR"), "IDR").to_wire(),
            "additionalInfo": {
                "buyer": {},
                "envInfo": self._env_info(),
            },
        }
        return await self.client.post_signed("consult_pay", CONSULT_PAY_PATH, body)

    async def get_order(self, partner_reference_no: str) -> Any:
        if not partner_reference_no:
            raise ValidationError("partner_reference_no is required")
        body = {
            "originalPartnerReferenceNo": partner_reference_no,
            "serviceCode": QUERY_PAYMENT_SERVICE_CODE,
            "merchantId": self.profile.merchant_id or "",
        }
        return await self.client.post_signed("query_payment", QUERY_PAYMENT_PATH, body)
