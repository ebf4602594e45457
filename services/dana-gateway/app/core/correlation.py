from __future__ import annotations
import uuid
from typing import Optional
from contextvars import ContextVar

# Inbound ids longer than this are replaced rather than echoed into logs
MAX_CORRELATION_ID_LENGTH = 128

_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def set_correlation_id(value: Optional[str]) -> str:
    """Bind the request's correlation id, minting one when the caller sent none."""
    if not value or len(value) > MAX_CORRELATION_ID_LENGTH:
        value = str(uuid.uuid4())
    _correlation_id.set(value)
    return value


def get_correlation_id(default: Optional[str] = None) -> Optional[str]:
    return _correlation_id.get() or default
