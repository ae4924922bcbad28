"""Tests for the QR payment-intent codec."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from types import SimpleNamespace

import pytest

from lzar_wallet.qr.codec import (
    DecodeFailure,
    IntentType,
    PaymentRequestIntent,
    TransactionReceiptIntent,
    UserProfileIntent,
    decode,
    encode,
    format_display,
    payment_request_for_charge,
    receipt_for_transaction,
)

SHOP_PAYLOAD = (
    '{"type":"payment_request","chargeId":"c1","amount":10,'
    '"currency":"LZAR","merchantName":"Shop"}'
)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


class TestDecode:
    def test_payment_request(self) -> None:
        result = decode(SHOP_PAYLOAD)
        assert result.ok
        assert result.failure is None
        assert result.intent == PaymentRequestIntent(
            charge_id="c1", amount=10, currency="LZAR", merchant_name="Shop"
        )
        assert result.intent.type is IntentType.PAYMENT_REQUEST

    def test_user_profile_with_optional_image(self) -> None:
        raw = '{"type":"user_profile","userId":"u1","userName":"Ana","profileImage":"https://x/a.png"}'
        result = decode(raw)
        assert result.intent == UserProfileIntent(
            user_id="u1", user_name="Ana", profile_image="https://x/a.png"
        )

    def test_transaction_receipt(self) -> None:
        raw = json.dumps({
            "type": "transaction_receipt",
            "transactionId": "t1",
            "amount": 12.5,
            "currency": "LZAR",
            "timestamp": "2024-01-01T00:00:00Z",
            "status": "completed",
        })
        result = decode(raw)
        assert isinstance(result.intent, TransactionReceiptIntent)
        assert result.intent.amount == 12.5

    def test_bytes_input(self) -> None:
        assert decode(SHOP_PAYLOAD.encode("utf-8")).ok

    def test_extra_fields_ignored(self) -> None:
        data = json.loads(SHOP_PAYLOAD)
        data["unexpected"] = {"nested": True}
        assert decode(json.dumps(data)).ok

    @pytest.mark.parametrize(
        "raw",
        ["not json", "", "[1, 2]", '"string"', "null", "{", b"\xff\xfe"],
    )
    def test_malformed(self, raw: str | bytes) -> None:
        result = decode(raw)
        assert not result.ok
        assert result.intent is None
        assert result.failure is DecodeFailure.MALFORMED

    @pytest.mark.parametrize(
        "raw",
        ['{"chargeId":"c1"}', '{"type":"coupon"}', '{"type":42}', '{"type":null}'],
    )
    def test_unknown_type_fails_closed(self, raw: str) -> None:
        assert decode(raw).failure is DecodeFailure.UNKNOWN_TYPE

    @pytest.mark.parametrize(
        "change",
        [
            {"chargeId": None},
            {"amount": "10"},
            {"amount": True},
            {"currency": 5},
            {"merchantName": ["Shop"]},
            {"description": 3},
        ],
    )
    def test_invalid_fields(self, change: dict) -> None:
        data = json.loads(SHOP_PAYLOAD)
        data.update(change)
        assert decode(json.dumps(data)).failure is DecodeFailure.INVALID_FIELDS

    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    def test_non_standard_constants_are_malformed(self, constant: str) -> None:
        raw = SHOP_PAYLOAD.replace('"amount":10', f'"amount":{constant}')
        assert constant in raw
        assert decode(raw).failure is DecodeFailure.MALFORMED

    def test_overflowing_amount_rejected(self) -> None:
        raw = SHOP_PAYLOAD.replace('"amount":10', '"amount":1e400')
        assert decode(raw).failure is DecodeFailure.INVALID_FIELDS

    def test_missing_required_field(self) -> None:
        raw = '{"type":"user_profile","userId":"u1"}'
        assert decode(raw).failure is DecodeFailure.INVALID_FIELDS

    def test_deeply_nested_does_not_raise(self) -> None:
        raw = "[" * 100_000 + "]" * 100_000
        assert decode(raw).failure is DecodeFailure.MALFORMED


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


class TestEncode:
    def test_compact_camel_case(self) -> None:
        intent = PaymentRequestIntent(
            charge_id="c1", amount=10, currency="LZAR", merchant_name="Shop"
        )
        assert encode(intent) == SHOP_PAYLOAD

    def test_optional_fields_included_when_set(self) -> None:
        intent = PaymentRequestIntent(
            charge_id="c1",
            amount=10,
            currency="LZAR",
            merchant_name="Shop",
            description="Coffee",
            merchant_id="m1",
            expires_at="2024-01-02T00:00:00",
        )
        data = json.loads(encode(intent))
        assert data["description"] == "Coffee"
        assert data["merchantId"] == "m1"
        assert data["expiresAt"] == "2024-01-02T00:00:00"

    @pytest.mark.parametrize("amount", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_amount_refused(self, amount: float) -> None:
        intent = PaymentRequestIntent(
            charge_id="c1", amount=amount, currency="LZAR", merchant_name="Shop"
        )
        with pytest.raises(ValueError):
            encode(intent)

    @pytest.mark.parametrize(
        "intent",
        [
            PaymentRequestIntent(
                charge_id="c1", amount=9.99, currency="LZAR", merchant_name="Café Ñ",
                description="Flat white",
            ),
            UserProfileIntent(user_id="u1", user_name="Ana"),
            UserProfileIntent(user_id="u2", user_name="Ben", profile_image="https://x/b.png"),
            TransactionReceiptIntent(
                transaction_id="t1", amount=100, currency="LZAR",
                timestamp="2024-01-01T00:00:00", status="completed",
            ),
        ],
    )
    def test_round_trip(self, intent) -> None:
        assert decode(encode(intent)).intent == intent


# ---------------------------------------------------------------------------
# Builders / display
# ---------------------------------------------------------------------------


class TestBuilders:
    def test_payment_request_for_charge(self) -> None:
        charge = SimpleNamespace(
            id="ch1",
            owner_id="m1",
            amount_cents=4000,
            currency="LZAR",
            description="",
            expires_at=datetime(2024, 1, 2, tzinfo=UTC),
        )
        intent = payment_request_for_charge(charge, "Mercado")
        assert intent.charge_id == "ch1"
        assert intent.amount == 40
        assert intent.merchant_name == "Mercado"
        assert intent.merchant_id == "m1"
        assert intent.description is None
        assert intent.expires_at == "2024-01-02T00:00:00+00:00"

    def test_receipt_for_transaction_fractional_amount(self) -> None:
        record = SimpleNamespace(
            id="t1",
            amount_cents=1050,
            currency="LZAR",
            created_at=datetime(2024, 1, 1, 12, 0),
            status="completed",
        )
        intent = receipt_for_transaction(record)
        assert intent.amount == 10.5
        assert intent.timestamp == "2024-01-01T12:00:00"
        assert decode(encode(intent)).intent == intent

    def test_format_display(self) -> None:
        card = format_display(decode(SHOP_PAYLOAD).intent)
        assert card.title == "Payment Request"
        assert card.subtitle == "Shop"
        assert card.amount == "10 LZAR"
        assert card.description == "No description"

    def test_format_display_receipt(self) -> None:
        intent = TransactionReceiptIntent(
            transaction_id="abcdef123456", amount=5, currency="LZAR",
            timestamp="t", status="failed",
        )
        card = format_display(intent)
        assert card.subtitle == "ID: abcdef12..."
        assert card.description == "Status: failed"
