from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.clients.dana import QUERY_MERCHANT_RESOURCE_PATH, DanaClient
from app.core.errors import ValidationError

QUERY_MERCHANT_RESOURCE_FUNCTION = "dana.merchant.queryMerchantResource"

DEPOSIT_BALANCE = "MERCHANT_DEPOSIT_BALANCE"
AVAILABLE_BALANCE = "MERCHANT_AVAILABLE_BALANCE"
TOTAL_BALANCE = "MERCHANT_TOTAL_BALANCE"

RESOURCE_TYPES = [DEPOSIT_BALANCE, AVAILABLE_BALANCE, TOTAL_BALANCE]

_BALANCE_KEYS = {
    DEPOSIT_BALANCE: "deposit_balance",
    AVAILABLE_BALANCE: "available_balance",
    TOTAL_BALANCE: "total_balance",
}

_DESCRIPTIONS = {
    DEPOSIT_BALANCE: "Total deposit balance of the merchant",
    AVAILABLE_BALANCE: "Available balance that can be used for transactions",
    TOTAL_BALANCE: "Total balance including all account balances",
}


def _format_amount(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return f"{raw:.0f}"
    return ""


def map_merchant_resource_response(
    merchant_id: str, raw: Optional[Dict[str, Any]], environment: Optional[str] = None
) -> Dict[str, Any]:
    """Flatten the provider's resource list into balances plus a resources map."""
    if not raw or not isinstance(raw, dict):
        return {"success": False, "message": "No data available", "data": None}

    meta: Dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds")}
    if environment:
        meta["environment"] = environment
    balances: Dict[str, Any] = {}
    resources: Dict[str, Any] = {}
    response = {
        "success": True,
        "message": "Merchant information retrieved successfully",
        "data": {"merchant_id": merchant_id, "balances": balances, "resources": resources},
        "meta": meta,
    }

    inner = raw.get("response") or {}
    head = inner.get("head") or {}
    if head.get("reqMsgId"):
        meta["request_id"] = head["reqMsgId"]

    body = inner.get("body") or {}
    for info in body.get("merchantResourceInformations") or []:
        resource_type = info.get("resourceType") or ""
        resource_value = info.get("value") or ""
        if not resource_type or not resource_value:
            continue

        try:
            value_data = json.loads(resource_value)
        except (TypeError, ValueError):
            value_data = None

        if not isinstance(value_data, dict):
            resources[resource_type] = {
                "type": resource_type,
                "value": resource_value,
                "description": _DESCRIPTIONS.get(resource_type, ""),
            }
            continue

        amount = _format_amount(value_data.get("amount"))
        currency = value_data.get("currency")
        if not isinstance(currency, str):
            currency = "IDR"

        balance_key = _BALANCE_KEYS.get(resource_type)
        if balance_key:
            balances[balance_key] = {"amount": amount, "currency": currency}
        resources[resource_type] = {
            "type": resource_type,
            "value": amount,
            "description": _DESCRIPTIONS.get(resource_type, ""),
        }

    if not resources:
        response["message"] = "No merchant resource information found"
        resources["note"] = {
            "type": "info",
            "value": "No resources available",
            "description": "The merchant may not have any resource information available at this time",
        }
    return response


class MerchantService:
    def __init__(self, client: DanaClient, default_merchant_id: Optional[str] = None) -> None:
        self.client = client
        self.default_merchant_id = default_merchant_id

    def resolve_merchant_id(self, merchant_id: Optional[str]) -> str:
        resolved = merchant_id or self.default_merchant_id
        if not resolved:
            raise ValidationError(
                "merchant_id is required",
                details="Merchant ID must be provided either as path parameter or in environment variable DANA_MERCHANT_ID",
            )
        return resolved

    async def query_merchant_resource(self, merchant_id: str) -> Any:
        return await self.client.post_open_api(
            "query_merchant_resource",
            QUERY_MERCHANT_RESOURCE_PATH,
            QUERY_MERCHANT_RESOURCE_FUNCTION,
            {
                "requestMerchantId": merchant_id,
                "merchantResourceInfoList": list(RESOURCE_TYPES),
            },
        )

    async def get_merchant_info(self, merchant_id: Optional[str] = None) -> Dict[str, Any]:
        resolved = self.resolve_merchant_id(merchant_id)
        raw = await self.query_merchant_resource(resolved)
        return map_merchant_resource_response(resolved, raw, self.client.settings.DANA_ENV)
