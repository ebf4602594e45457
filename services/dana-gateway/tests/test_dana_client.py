import base64
import json
import logging

import httpx
import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from app.clients.dana import CREATE_ORDER_PATH, DanaClient
from app.core.errors import NetworkError, ProviderError
from app.security.signer import RequestSigner
from app.utils.hashutils import canonical_json, sha256_hex

from conftest import CLIENT_ID


def _client(settings, provider) -> DanaClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
    return DanaClient(settings, signer=RequestSigner(settings.DANA_PRIVATE_KEY), http_client=http_client)


@pytest.mark.anyio
async def test_signed_request_headers_and_body(dana_client, provider, public_key):
    payload = {"partnerReferenceNo": "ORDER-1", "amount": {"value": "1.00", "currency": "IDR"}}
    result = await dana_client.post_signed("create_order_hosted", CREATE_ORDER_PATH, payload)
    assert result == provider.payload

    sent = provider.last
    assert str(sent.url) == "https://api.sandbox.dana.id" + CREATE_ORDER_PATH
    assert sent.content == canonical_json(payload)
    assert sent.headers["Content-Type"] == "application/json"
    assert sent.headers["X-PARTNER-ID"] == CLIENT_ID
    assert sent.headers["CHANNEL-ID"] == "95221"
    assert sent.headers["X-EXTERNAL-ID"].startswith("sdk")
    assert "ORIGIN" not in sent.headers
    assert "X-Debug-Mode" not in sent.headers

    string_to_sign = f"POST:{CREATE_ORDER_PATH}:{sha256_hex(sent.content)}:{sent.headers['X-TIMESTAMP']}"
    public_key.verify(
        base64.b64decode(sent.headers["X-SIGNATURE"]),
        string_to_sign.encode(),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )


@pytest.mark.anyio
async def test_optional_headers(make_settings, provider):
    settings = make_settings(
        DANA_ORIGIN="https://shop.example.com",
        DANA_X_PARTNER_ID="PARTNER-9",
        DANA_DEBUG=True,
        DANA_USER_AGENT="dana-gateway/0.1",
    )
    await _client(settings, provider).post_signed("op", CREATE_ORDER_PATH, {})
    headers = provider.last.headers
    assert headers["ORIGIN"] == "https://shop.example.com"
    assert headers["X-PARTNER-ID"] == "PARTNER-9"
    assert headers["X-Debug-Mode"] == "true"
    assert headers["User-Agent"] == "dana-gateway/0.1"


@pytest.mark.anyio
async def test_debug_mode_header_is_sandbox_only(make_settings, provider):
    settings = make_settings(DANA_ENV="production", DANA_DEBUG=True)
    await _client(settings, provider).post_signed("op", CREATE_ORDER_PATH, {})
    assert str(provider.last.url).startswith("https://api.dana.id/")
    assert "X-Debug-Mode" not in provider.last.headers


@pytest.mark.anyio
async def test_signed_path_includes_custom_host_prefix(make_settings, provider, public_key):
    settings = make_settings(DANA_HOST="localhost:8080/mock", DANA_SCHEME="http")
    await _client(settings, provider).post_signed("op", CREATE_ORDER_PATH, {})
    sent = provider.last
    assert str(sent.url) == "http://localhost:8080/mock" + CREATE_ORDER_PATH
    string_to_sign = f"POST:/mock{CREATE_ORDER_PATH}:{sha256_hex(sent.content)}:{sent.headers['X-TIMESTAMP']}"
    public_key.verify(
        base64.b64decode(sent.headers["X-SIGNATURE"]),
        string_to_sign.encode(),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )


@pytest.mark.anyio
async def test_non_2xx_is_provider_error(dana_client, provider):
    provider.status_code = 401
    provider.payload = {"responseCode": "4015400", "responseMessage": "Unauthorized. Invalid Signature"}
    with pytest.raises(ProviderError) as info:
        await dana_client.post_signed("op", CREATE_ORDER_PATH, {})
    assert info.value.status_code == 401
    assert info.value.body == provider.payload
    assert len(provider.requests) == 1


@pytest.mark.anyio
async def test_non_json_error_body_is_kept_raw(dana_client, provider):
    provider.status_code = 503
    provider.raw_text = "<html>upstream down</html>"
    with pytest.raises(ProviderError) as info:
        await dana_client.post_signed("op", CREATE_ORDER_PATH, {})
    assert info.value.body == "<html>upstream down</html>"


@pytest.mark.anyio
async def test_unparseable_success_body_is_provider_error(dana_client, provider):
    provider.raw_text = "not json"
    with pytest.raises(ProviderError, match="unmarshal"):
        await dana_client.post_signed("op", CREATE_ORDER_PATH, {})


@pytest.mark.anyio
async def test_timeout_is_network_error_without_retry(dana_client, provider):
    provider.error = lambda request: httpx.ReadTimeout("timed out", request=request)
    with pytest.raises(NetworkError) as info:
        await dana_client.post_signed("op", CREATE_ORDER_PATH, {})
    assert info.value.timeout is True
    assert info.value.http_status == 504
    assert len(provider.requests) == 1


@pytest.mark.anyio
async def test_connection_failure_is_network_error(dana_client, provider):
    provider.error = lambda request: httpx.ConnectError("refused", request=request)
    with pytest.raises(NetworkError) as info:
        await dana_client.post_signed("op", CREATE_ORDER_PATH, {})
    assert info.value.timeout is False
    assert info.value.http_status == 502


@pytest.mark.anyio
async def test_open_api_envelope_is_signed(dana_client, provider, public_key):
    provider.payload = {"response": {"head": {}, "body": {}}, "signature": "x"}
    await dana_client.post_open_api(
        "query_merchant_resource",
        "/dana/merchant/queryMerchantResource.htm",
        "dana.merchant.queryMerchantResource",
        {"requestMerchantId": "M1"},
    )
    envelope = json.loads(provider.last.content)
    request = envelope["request"]
    assert list(envelope) == ["request", "signature"]
    assert request["head"]["function"] == "dana.merchant.queryMerchantResource"
    assert request["head"]["clientId"] == CLIENT_ID
    assert request["head"]["clientSecret"] == "client-secret"
    assert request["head"]["reqTime"].endswith("+07:00")
    assert request["body"] == {"requestMerchantId": "M1"}
    public_key.verify(
        base64.b64decode(envelope["signature"]),
        canonical_json(request),
        padding.PKCS1v15(),
        hashes.SHA256(),
    )


@pytest.mark.anyio
async def test_debug_trace_truncates_signature(make_settings, provider, caplog):
    settings = make_settings(DANA_DEBUG=True)
    with caplog.at_level(logging.DEBUG, logger="dana.client"):
        await _client(settings, provider).post_signed("op", CREATE_ORDER_PATH, {"a": 1})
    signature = provider.last.headers["X-SIGNATURE"]
    traces = [r.getMessage() for r in caplog.records if r.getMessage().startswith("outbound request")]
    assert len(traces) == 1
    assert signature[:20] + "..." in traces[0]
    assert signature not in traces[0]
    assert 'body={"a":1}' in traces[0]
