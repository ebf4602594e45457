from __future__ import annotations
import logging
from typing import Any, Dict, Optional
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi import status as http
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.core.correlation import get_correlation_id

log = logging.getLogger("errors")


class GatewayError(Exception):
    """Base for every error surfaced to the inbound caller."""

    code = "GATEWAY_ERROR"
    http_status = http.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(GatewayError):
    """Missing or malformed caller input, raised before any signing work."""

    code = "VALIDATION_ERROR"
    http_status = http.HTTP_400_BAD_REQUEST


class KeyFormatError(GatewayError):
    code = "KEY_FORMAT_ERROR"


class SigningError(GatewayError):
    code = "SIGNING_ERROR"


class SerializationError(GatewayError):
    code = "SERIALIZATION_ERROR"


class ProviderError(GatewayError):
    """Non-2xx (or unreadable) response from the payment provider."""

    code = "PROVIDER_ERROR"
    http_status = http.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, status_code: int, body: Any = None) -> None:
        super().__init__(message, details={"status_code": status_code, "body": body})
        self.status_code = status_code
        self.body = body


class NetworkError(GatewayError):
    code = "NETWORK_ERROR"
    http_status = http.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, details: Any = None, timeout: bool = False) -> None:
        super().__init__(message, details)
        self.timeout = timeout
        if timeout:
            self.http_status = http.HTTP_504_GATEWAY_TIMEOUT


# Human messages for HTTPException details raised by the framework itself
_MESSAGES = {
    "Not Found": "The requested resource was not found.",
    "Method Not Allowed": "The HTTP method is not allowed for this resource.",
}

_HTTP_CODES = {
    http.HTTP_404_NOT_FOUND: "NOT_FOUND",
    http.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
}


def build_error(error: str, code: str, details: Any = None) -> Dict[str, Any]:
    return {
        "success": False,
        "error": error,
        "code": code,
        "details": details,
    }


def _response(status_code: int, payload: Dict[str, Any]) -> JSONResponse:
    headers: Optional[Dict[str, str]] = None
    cid = get_correlation_id()
    if cid:
        headers = {"X-Request-ID": cid}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload), headers=headers)


async def gateway_exception_handler(request: Request, exc: GatewayError):
    if exc.http_status >= 500:
        log.error("%s: %s", exc.code, exc.message, extra={"method": request.method, "path": request.url.path})
    else:
        log.info("%s: %s", exc.code, exc.message, extra={"method": request.method, "path": request.url.path})
    payload = build_error(exc.message, exc.code, exc.details)
    return _response(exc.http_status, payload)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = str(exc.detail)
    code = _HTTP_CODES.get(exc.status_code, "HTTP_ERROR")
    payload = build_error(_MESSAGES.get(detail, detail), code)
    return _response(exc.status_code, payload)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    payload = build_error("Invalid request body", "VALIDATION_ERROR", exc.errors())
    return _response(http.HTTP_400_BAD_REQUEST, payload)


async def unhandled_exception_handler(request: Request, exc: Exception):
    # Avoid leaking internals; logs will carry the stacktrace
    log.exception("unhandled_error", extra={"method": request.method, "path": request.url.path})
    payload = build_error("An unexpected error occurred.", "INTERNAL_ERROR")
    return _response(http.HTTP_500_INTERNAL_SERVER_ERROR, payload)
