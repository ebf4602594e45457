"""Request signing for the DANA SNAP API.

Every outgoing call is authenticated by an RSA signature over::

    <HTTP METHOD>:<RELATIVE PATH>:<lowercase hex SHA-256 of minified body>:<X-TIMESTAMP>

The body bytes hashed here must be the exact bytes put on the wire.
"""
from __future__ import annotations

import base64
import threading
import uuid
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from app.core.errors import KeyFormatError, SigningError
from app.utils.hashutils import sha256_hex
from app.utils.timeutils import jakarta_timestamp

PEM_MARKER = "-----BEGIN"


@dataclass(frozen=True)
class SigningContext:
    http_method: str
    url_path: str
    timestamp: str
    content_digest: str

    @property
    def string_to_sign(self) -> str:
        return f"{self.http_method}:{self.url_path}:{self.content_digest}:{self.timestamp}"


@dataclass(frozen=True)
class SignatureResult:
    signature: str
    timestamp: str
    external_id: str


def build_signing_context(
    method: str, path: str, body: bytes, timestamp: Optional[str] = None
) -> SigningContext:
    return SigningContext(
        http_method=method.upper(),
        url_path=path,
        timestamp=timestamp or jakarta_timestamp(),
        content_digest=sha256_hex(body),
    )


def generate_external_id() -> str:
    return "sdk" + str(uuid.uuid4())[3:]


def normalize_private_key(pem_text: Optional[str]) -> str:
    """Turn an env-style key (literal ``\\n`` escapes) into real PEM text."""
    if not pem_text:
        raise KeyFormatError("DANA_PRIVATE_KEY is required")
    normalized = pem_text.replace("\\n", "\n").strip()
    if PEM_MARKER not in normalized:
        raise KeyFormatError("invalid private key format: missing PEM headers")
    return normalized


def load_private_key(pem_text: Optional[str]) -> rsa.RSAPrivateKey:
    """Parse an unencrypted RSA key in PKCS#1 or PKCS#8 PEM form."""
    normalized = normalize_private_key(pem_text)
    try:
        key = serialization.load_pem_private_key(normalized.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError(f"failed to parse private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError("parsed key is not an RSA private key")
    return key


def sign_bytes(key: rsa.RSAPrivateKey, data: bytes) -> str:
    try:
        signature = key.sign(data, padding.PKCS1v15(), hashes.SHA256())
    except (ValueError, TypeError) as exc:
        raise SigningError(f"failed to sign data: {exc}") from exc
    return base64.b64encode(signature).decode("ascii")


def sign_string(key: rsa.RSAPrivateKey, string_to_sign: str) -> str:
    return sign_bytes(key, string_to_sign.encode("utf-8"))


class RequestSigner:
    """Holds the merchant private key and signs outgoing requests.

    The key is parsed on first use and then shared read-only; the lock only
    guards that first load.
    """

    def __init__(self, private_key_pem: Optional[str]) -> None:
        self._pem = private_key_pem
        self._key: Optional[rsa.RSAPrivateKey] = None
        self._lock = threading.Lock()

    @property
    def key(self) -> rsa.RSAPrivateKey:
        if self._key is None:
            with self._lock:
                if self._key is None:
                    self._key = load_private_key(self._pem)
        return self._key

    def sign(self, method: str, path: str, body: bytes, timestamp: Optional[str] = None) -> SignatureResult:
        return self.sign_context(build_signing_context(method, path, body, timestamp))

    def sign_context(self, ctx: SigningContext) -> SignatureResult:
        return SignatureResult(
            signature=sign_string(self.key, ctx.string_to_sign),
            timestamp=ctx.timestamp,
            external_id=generate_external_id(),
        )

    def sign_payload(self, data: bytes) -> str:
        return sign_bytes(self.key, data)
