from __future__ import annotations

import json
from typing import Any, Callable, List, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient

from app.clients.dana import DanaClient
from app.core.config import Settings
from app.models.order import CheckoutProfile
from app.security.signer import RequestSigner
from app.services.merchant_service import MerchantService
from app.services.order_service import OrderService

CLIENT_ID = "2024061212345678901234"
MERCHANT_ID = "216620000000000000001"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key(rsa_key):
    return rsa_key.public_key()


@pytest.fixture(scope="session")
def pkcs1_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture(scope="session")
def pkcs8_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def make_settings(pkcs1_pem) -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values = {
            "DANA_ENV": "sandbox",
            "DANA_CLIENT_ID": CLIENT_ID,
            # env-style key: newlines escaped as literal \n
            "DANA_PRIVATE_KEY": pkcs1_pem.replace("\n", "\\n"),
            "DANA_CLIENT_SECRET": "client-secret",
            "DANA_MERCHANT_ID": MERCHANT_ID,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


class ProviderStub:
    """Records outbound requests and answers with a canned response."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.payload: Any = {
            "responseCode": "2005400",
            "responseMessage": "Successful",
            "referenceNo": "2020102977770000000009",
            "partnerReferenceNo": "ORDER-1",
            "webRedirectUrl": "https://m.sandbox.dana.id/n/cashier/new/checkout?bizNo=1",
        }
        self.raw_text: Optional[str] = None
        self.error: Optional[Callable[[httpx.Request], Exception]] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(request)
        if self.raw_text is not None:
            return httpx.Response(self.status_code, text=self.raw_text)
        return httpx.Response(self.status_code, json=self.payload)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self) -> Any:
        return json.loads(self.last.content)


class CountingSigner(RequestSigner):
    def __init__(self, private_key_pem: Optional[str]) -> None:
        super().__init__(private_key_pem)
        self.calls = 0

    def sign_context(self, ctx):
        self.calls += 1
        return super().sign_context(ctx)


@pytest.fixture
def provider() -> ProviderStub:
    return ProviderStub()


@pytest.fixture
def settings(make_settings) -> Settings:
    return make_settings()


@pytest.fixture
def signer(settings) -> CountingSigner:
    return CountingSigner(settings.DANA_PRIVATE_KEY)


@pytest.fixture
def dana_client(settings, signer, provider) -> DanaClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler), timeout=30.0)
    return DanaClient(settings, signer=signer, http_client=http_client)


@pytest.fixture
def order_service(dana_client, settings) -> OrderService:
    return OrderService(dana_client, CheckoutProfile.from_settings(settings))


@pytest.fixture
def merchant_service(dana_client, settings) -> MerchantService:
    return MerchantService(dana_client, default_merchant_id=settings.DANA_MERCHANT_ID)


@pytest.fixture
def api(order_service, merchant_service):
    from app.main import app

    app.state.order_service = order_service
    app.state.merchant_service = merchant_service
    # Not entered as a context manager: startup would rebuild services from the environment
    return TestClient(app)
