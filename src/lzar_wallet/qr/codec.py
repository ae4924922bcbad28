"""QR payment-intent codec.

A scanned QR code carries a compact JSON object with a ``type``
discriminator and camelCase fields::

    {"type": "payment_request", "chargeId": "c1", "amount": 10,
     "currency": "LZAR", "merchantName": "Shop"}

There is no version field: an unrecognised ``type`` fails closed.
:func:`decode` never raises; it returns a :class:`DecodeResult` whose
``failure`` says why a payload is not actionable.
"""

from __future__ import annotations

import enum
import json
import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from lzar_wallet.engine.models import Charge, TransactionRecord

logger = logging.getLogger(__name__)


class IntentType(enum.StrEnum):
    """Known QR payload discriminators."""

    PAYMENT_REQUEST = "payment_request"
    USER_PROFILE = "user_profile"
    TRANSACTION_RECEIPT = "transaction_receipt"


class DecodeFailure(enum.StrEnum):
    """Why a scanned payload could not be used."""

    MALFORMED = "malformed"
    UNKNOWN_TYPE = "unknown_type"
    INVALID_FIELDS = "invalid_fields"


@dataclass(frozen=True)
class PaymentRequestIntent:
    charge_id: str
    amount: int | float
    currency: str
    merchant_name: str
    description: str | None = None
    merchant_id: str | None = None
    expires_at: str | None = None

    type = IntentType.PAYMENT_REQUEST


@dataclass(frozen=True)
class UserProfileIntent:
    user_id: str
    user_name: str
    profile_image: str | None = None

    type = IntentType.USER_PROFILE


@dataclass(frozen=True)
class TransactionReceiptIntent:
    transaction_id: str
    amount: int | float
    currency: str
    timestamp: str
    status: str

    type = IntentType.TRANSACTION_RECEIPT


QRIntent = PaymentRequestIntent | UserProfileIntent | TransactionReceiptIntent


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of :func:`decode`: exactly one of *intent* / *failure* is set."""

    intent: QRIntent | None = None
    failure: DecodeFailure | None = None

    @property
    def ok(self) -> bool:
        return self.intent is not None


# (attribute, wire key, kind, required) per intent type
_STR = "str"
_NUM = "number"

_FIELDS: dict[IntentType, tuple[tuple[str, str, str, bool], ...]] = {
    IntentType.PAYMENT_REQUEST: (
        ("charge_id", "chargeId", _STR, True),
        ("amount", "amount", _NUM, True),
        ("currency", "currency", _STR, True),
        ("merchant_name", "merchantName", _STR, True),
        ("description", "description", _STR, False),
        ("merchant_id", "merchantId", _STR, False),
        ("expires_at", "expiresAt", _STR, False),
    ),
    IntentType.USER_PROFILE: (
        ("user_id", "userId", _STR, True),
        ("user_name", "userName", _STR, True),
        ("profile_image", "profileImage", _STR, False),
    ),
    IntentType.TRANSACTION_RECEIPT: (
        ("transaction_id", "transactionId", _STR, True),
        ("amount", "amount", _NUM, True),
        ("currency", "currency", _STR, True),
        ("timestamp", "timestamp", _STR, True),
        ("status", "status", _STR, True),
    ),
}

_CLASSES: dict[IntentType, type[QRIntent]] = {
    IntentType.PAYMENT_REQUEST: PaymentRequestIntent,
    IntentType.USER_PROFILE: UserProfileIntent,
    IntentType.TRANSACTION_RECEIPT: TransactionReceiptIntent,
}


def _is_kind(value: Any, kind: str) -> bool:
    if kind == _NUM:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return math.isfinite(value)
    return isinstance(value, str)


def _reject_constant(name: str) -> Any:
    msg = f"non-standard JSON constant {name}"
    raise ValueError(msg)


def encode(intent: QRIntent) -> str:
    """Serialise *intent* into the QR JSON payload.

    Optional fields that are ``None`` are omitted.

    Raises:
        ValueError: If a numeric field is NaN or infinite.
    """
    payload: dict[str, Any] = {"type": intent.type.value}
    for attr, key, _kind, required in _FIELDS[intent.type]:
        value = getattr(intent, attr)
        if value is None and not required:
            continue
        payload[key] = value
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"), allow_nan=False)


def decode(raw: str | bytes) -> DecodeResult:
    """Decode a scanned payload. Never raises."""
    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except (ValueError, TypeError, RecursionError):
        logger.debug("QR payload is not JSON")
        return DecodeResult(failure=DecodeFailure.MALFORMED)
    if not isinstance(data, dict):
        return DecodeResult(failure=DecodeFailure.MALFORMED)

    try:
        intent_type = IntentType(data.get("type"))
    except (ValueError, TypeError):
        return DecodeResult(failure=DecodeFailure.UNKNOWN_TYPE)

    values: dict[str, Any] = {}
    for attr, key, kind, required in _FIELDS[intent_type]:
        value = data.get(key)
        if value is None:
            if required:
                return DecodeResult(failure=DecodeFailure.INVALID_FIELDS)
            continue
        if not _is_kind(value, kind):
            return DecodeResult(failure=DecodeFailure.INVALID_FIELDS)
        values[attr] = value

    return DecodeResult(intent=_CLASSES[intent_type](**values))


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _number(cents: int) -> int | float:
    return cents // 100 if cents % 100 == 0 else cents / 100


def payment_request_for_charge(charge: Charge, merchant_name: str) -> PaymentRequestIntent:
    """Build the payment-request intent shown for an active charge."""
    return PaymentRequestIntent(
        charge_id=charge.id,
        amount=_number(charge.amount_cents),
        currency=charge.currency,
        merchant_name=merchant_name,
        description=charge.description or None,
        merchant_id=charge.owner_id,
        expires_at=charge.expires_at.isoformat() if charge.expires_at else None,
    )


def receipt_for_transaction(record: TransactionRecord) -> TransactionReceiptIntent:
    """Build a receipt intent for a recorded transaction."""
    return TransactionReceiptIntent(
        transaction_id=record.id,
        amount=_number(record.amount_cents),
        currency=record.currency,
        timestamp=record.created_at.isoformat() if record.created_at else "",
        status=record.status,
    )


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DisplayCard:
    """Human-readable summary of a scanned intent."""

    title: str
    subtitle: str
    amount: str
    description: str


def format_display(intent: QRIntent) -> DisplayCard:
    """Summarise *intent* for a confirmation screen."""
    if isinstance(intent, PaymentRequestIntent):
        return DisplayCard(
            title="Payment Request",
            subtitle=intent.merchant_name,
            amount=f"{intent.amount} {intent.currency}",
            description=intent.description or "No description",
        )
    if isinstance(intent, UserProfileIntent):
        return DisplayCard(
            title="User Profile",
            subtitle=intent.user_name,
            amount="",
            description="Scan to send money",
        )
    return DisplayCard(
        title="Transaction Receipt",
        subtitle=f"ID: {intent.transaction_id[:8]}...",
        amount=f"{intent.amount} {intent.currency}",
        description=f"Status: {intent.status}",
    )
