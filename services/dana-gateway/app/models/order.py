from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from app.core.config import Settings


@dataclass
class Money:
    value: str
    currency: str

    def to_wire(self) -> Dict[str, str]:
        return {"value": self.value, "currency": self.currency}


@dataclass
class PayOptionDetail:
    pay_method: str
    pay_option: str
    trans_amount: Money
    fee_amount: Optional[Money] = None
    card_token: Optional[str] = None
    merchant_token: Optional[str] = None


@dataclass
class UrlParam:
    url: str
    type: str
    is_deeplink: str


@dataclass
class CreateOrderParams:
    partner_reference_no: str
    amount: Money
    url_params: List[UrlParam]
    merchant_id: Optional[str] = None
    pay_option_details: List[PayOptionDetail] = field(default_factory=list)
    sub_merchant_id: Optional[str] = None
    external_store_id: Optional[str] = None
    valid_up_to: Optional[str] = None
    disabled_pay_methods: Optional[str] = None


@dataclass(frozen=True)
class CheckoutProfile:
    """Order payload fields that come from configuration, resolved once."""

    merchant_id: Optional[str] = None
    mcc: str = "5999"
    order_title: Optional[str] = None
    merchant_trans_type: str = "SALE"
    buyer: Dict[str, str] = field(default_factory=dict)
    env_info: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls, s: Settings) -> "CheckoutProfile":
        buyer = {
            "externalUserId": s.DANA_BUYER_EXTERNAL_USER_ID,
            "userId": s.DANA_BUYER_USER_ID,
            "nickname": s.DANA_BUYER_NICKNAME,
            "externalUserType": s.DANA_BUYER_EXTERNAL_USER_TYPE,
        }
        env_info = {
            "clientIp": s.DANA_CLIENT_IP,
            "sessionId": s.DANA_SESSION_ID,
            "tokenId": s.DANA_TOKEN_ID,
            "osType": s.DANA_OS_TYPE,
            "websiteLanguage": s.DANA_WEBSITE_LANGUAGE,
        }
        return cls(
            merchant_id=s.DANA_MERCHANT_ID or None,
            mcc=s.DANA_MCC or "5999",
            order_title=s.DANA_ORDER_TITLE or None,
            merchant_trans_type=s.DANA_MERCHANT_TRANS_TYPE or "SALE",
            buyer={k: v for k, v in buyer.items() if v},
            env_info={k: v for k, v in env_info.items() if v},
        )

    def title_for(self, partner_reference_no: str) -> str:
        return self.order_title or f"Order {partner_reference_no}"
