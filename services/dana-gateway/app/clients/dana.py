from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Dict, Mapping, Optional

import httpx

from app.core.config import Settings
from app.core.errors import NetworkError, ProviderError
from app.core.metrics import observe_dana_request
from app.security.signer import RequestSigner, SignatureResult, build_signing_context
from app.utils.hashutils import canonical_json
from app.utils.timeutils import jakarta_timestamp

log = logging.getLogger("dana.client")

CREATE_ORDER_PATH = "/payment-gateway/v1.0/debit/payment-host-to-host.htm"
QUERY_PAYMENT_PATH = "/payment-gateway/v1.0/debit/status.htm"
CONSULT_PAY_PATH = "/v1.0/payment-gateway/consult-pay.htm"
QUERY_MERCHANT_RESOURCE_PATH = "/dana/merchant/queryMerchantResource.htm"

CHANNEL_ID = "95221"
OPEN_API_VERSION = "2.0"


class DanaClient:
    """Signed HTTP access to the DANA API.

    Built once at startup and shared by every request handler. Each call is
    sent exactly once; failures are raised, never retried.
    """

    def __init__(
        self,
        settings: Settings,
        signer: Optional[RequestSigner] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self.signer = signer or RequestSigner(settings.DANA_PRIVATE_KEY)
        self.base_url = settings.dana_base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=settings.DANA_TIMEOUT_SECONDS)

    async def aclose(self) -> None:
        await self._http.aclose()

    def build_headers(self, sig: SignatureResult) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-TIMESTAMP": sig.timestamp,
            "X-SIGNATURE": sig.signature,
            "X-PARTNER-ID": self.settings.partner_id,
            "X-EXTERNAL-ID": sig.external_id,
            "CHANNEL-ID": CHANNEL_ID,
        }
        if self.settings.DANA_ORIGIN:
            headers["ORIGIN"] = self.settings.DANA_ORIGIN
        if self.settings.DANA_USER_AGENT:
            headers["User-Agent"] = self.settings.DANA_USER_AGENT
        if self.settings.DANA_DEBUG and self.settings.is_sandbox:
            headers["X-Debug-Mode"] = "true"
        return headers

    async def post_signed(self, operation: str, path: str, payload: Mapping[str, Any]) -> Any:
        """POST a SNAP request whose headers carry the body signature."""
        url = self.base_url + path
        body = canonical_json(payload)
        ctx = build_signing_context("POST", httpx.URL(url).path, body)
        sig = self.signer.sign_context(ctx)
        headers = self.build_headers(sig)

        if self.settings.DANA_DEBUG:
            shown = {k: (v[:20] + "..." if k == "X-SIGNATURE" else v) for k, v in headers.items()}
            log.debug(
                "outbound request headers=%s body=%s string_to_sign=%s",
                json.dumps(shown),
                body.decode("utf-8"),
                ctx.string_to_sign,
                extra={"operation": operation, "url": url, "external_id": sig.external_id},
            )
        return await self._send(operation, url, body, headers)

    async def post_open_api(
        self, operation: str, path: str, function: str, body_fields: Mapping[str, Any]
    ) -> Any:
        """POST an Open API envelope: ``{"request": {head, body}, "signature": ...}``."""
        request = {
            "head": {
                "version": OPEN_API_VERSION,
                "function": function,
                "clientId": self.settings.DANA_CLIENT_ID,
                "clientSecret": self.settings.DANA_CLIENT_SECRET,
                "reqTime": jakarta_timestamp(),
                "reqMsgId": str(uuid.uuid4()),
                "reserve": "{}",
            },
            "body": dict(body_fields),
        }
        envelope = {
            "request": request,
            "signature": self.signer.sign_payload(canonical_json(request)),
        }
        url = self.base_url + path
        body = canonical_json(envelope)
        headers = {"Content-Type": "application/json"}
        if self.settings.DANA_USER_AGENT:
            headers["User-Agent"] = self.settings.DANA_USER_AGENT
        if self.settings.DANA_DEBUG:
            log.debug(
                "outbound open api request function=%s reqMsgId=%s",
                function,
                request["head"]["reqMsgId"],
                extra={"operation": operation, "url": url},
            )
        return await self._send(operation, url, body, headers)

    async def _send(self, operation: str, url: str, body: bytes, headers: Dict[str, str]) -> Any:
        start = time.perf_counter()
        try:
            resp = await self._http.post(url, content=body, headers=headers)
        except httpx.TimeoutException as exc:
            observe_dana_request(operation, "timeout", time.perf_counter() - start)
            raise NetworkError(f"request to DANA API timed out: {exc}", timeout=True) from exc
        except httpx.HTTPError as exc:
            observe_dana_request(operation, "network_error", time.perf_counter() - start)
            raise NetworkError(f"failed to execute HTTP request: {exc}") from exc
        duration = time.perf_counter() - start

        if self.settings.DANA_DEBUG:
            log.debug(
                "outbound response status=%d body=%s",
                resp.status_code,
                resp.text,
                extra={"operation": operation, "url": url, "duration_ms": int(duration * 1000)},
            )

        if not resp.is_success:
            observe_dana_request(operation, "provider_error", duration)
            raise ProviderError(
                f"DANA API error (HTTP {resp.status_code})",
                status_code=resp.status_code,
                body=_parse_body(resp),
            )

        try:
            data = resp.json()
        except ValueError as exc:
            observe_dana_request(operation, "provider_error", duration)
            raise ProviderError(
                f"failed to unmarshal response: {exc}", status_code=resp.status_code, body=resp.text
            ) from exc

        observe_dana_request(operation, "success", duration)
        log.info(
            "dana call ok",
            extra={"operation": operation, "status_code": resp.status_code, "duration_ms": int(duration * 1000)},
        )
        return data


def _parse_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text
