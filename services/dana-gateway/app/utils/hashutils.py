from __future__ import annotations
import hashlib, json
from typing import Any, Mapping

from app.core.errors import SerializationError


def canonical_json(data: Mapping[str, Any]) -> bytes:
    """Minified JSON bytes of ``data`` in insertion order.

    The same bytes are hashed, signed and sent, so no whitespace and no key
    sorting: field order is whatever order the payload builder used.
    """
    try:
        s = json.dumps(data, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"failed to serialize request body: {exc}") from exc
    return s.encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
