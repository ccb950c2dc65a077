"""Tests for payment gateway signatures."""

import base64

import pytest

from roomledger.core import signing
from roomledger.core.errors import ValidationError


def _payload(**overrides):
    payload = {
        "partnerCode": "MOMO",
        "orderId": "ORDER-1",
        "requestId": "REQ-1",
        "amount": 3325000,
        "orderInfo": "Invoice INV-202407-001",
        "extraData": signing.encode_extra_data({"invoiceId": "abc"}),
        "ipnUrl": "https://example.com/ipn",
        "redirectUrl": "https://example.com/return",
        "requestType": "captureWallet",
    }
    payload.update(overrides)
    return payload


def test_signature_base_uses_fixed_field_order():
    base = signing.build_signature_base(
        {"amount": 10, "orderId": "O1", "extraData": None}, access_key="AK"
    )
    assert base == (
        "accessKey=AK&amount=10&extraData=&ipnUrl=&orderId=O1&orderInfo="
        "&partnerCode=&redirectUrl=&requestId=&requestType="
    )


def test_verify_accepts_matching_signature():
    payload = _payload()
    signature = signing.sign(signing.build_signature_base(payload, "AK"), "SK")
    assert signing.verify(payload, signature, "AK", "SK")


@pytest.mark.parametrize(
    "field, value", [("amount", 1), ("orderId", "ORDER-2"), ("extraData", "")]
)
def test_verify_rejects_tampered_payload(field, value):
    payload = _payload()
    signature = signing.sign(signing.build_signature_base(payload, "AK"), "SK")
    assert not signing.verify(_payload(**{field: value}), signature, "AK", "SK")


def test_verify_is_case_sensitive():
    payload = _payload()
    signature = signing.sign(signing.build_signature_base(payload, "AK"), "SK")
    assert not signing.verify(payload, signature.upper(), "AK", "SK")


def test_extra_data_round_trip():
    encoded = signing.encode_extra_data({"invoiceId": "x"})
    assert signing.decode_extra_data(encoded) == {"invoiceId": "x"}


@pytest.mark.parametrize(
    "value", [None, "", "not base64!", base64.b64encode(b"[1, 2]").decode()]
)
def test_extra_data_rejects_undecodable_values(value):
    with pytest.raises(ValidationError):
        signing.decode_extra_data(value)
