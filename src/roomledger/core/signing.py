"""Signature helpers for payment gateway callbacks."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
from collections.abc import Mapping
from typing import Any

from roomledger.core.errors import ValidationError

# Order matters: the gateway signs the fields joined in exactly this order.
SIGNATURE_FIELDS = (
    "accessKey",
    "amount",
    "extraData",
    "ipnUrl",
    "orderId",
    "orderInfo",
    "partnerCode",
    "redirectUrl",
    "requestId",
    "requestType",
)


def build_signature_base(values: Mapping[str, Any], access_key: str) -> str:
    """Joins the signed fields as ``key=value`` pairs separated by ``&``."""
    parts = []
    for key in SIGNATURE_FIELDS:
        value = access_key if key == "accessKey" else values.get(key)
        parts.append(f"{key}={'' if value is None else value}")
    return "&".join(parts)


def sign(base: str, secret_key: str) -> str:
    """HMAC-SHA256 of ``base``, hex-encoded."""
    return hmac.new(
        secret_key.encode("utf-8"), base.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify(
    values: Mapping[str, Any], signature: str, access_key: str, secret_key: str
) -> bool:
    expected = sign(build_signature_base(values, access_key), secret_key)
    return hmac.compare_digest(expected, signature or "")


def encode_extra_data(data: Mapping[str, Any]) -> str:
    return base64.b64encode(json.dumps(dict(data)).encode("utf-8")).decode("ascii")


def decode_extra_data(value: str | None) -> dict[str, Any]:
    """Decodes the base64 JSON extension field of a callback."""
    if not value:
        raise ValidationError("Callback carries no extraData.")
    try:
        decoded = json.loads(base64.b64decode(value, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ValidationError("Callback extraData cannot be decoded.") from e
    if not isinstance(decoded, dict):
        raise ValidationError("Callback extraData is not an object.")
    return decoded
