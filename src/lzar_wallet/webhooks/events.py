"""Inbound settlement webhook events.

Events arrive as ``{"type": ..., "data": {...}}``. Known types decode into
frozen dataclasses; unknown types become :class:`UnknownEvent` so the
caller can acknowledge and ignore them. Extra fields are ignored, missing
required fields are rejected.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from lzar_wallet.errors.definitions import ErrInvalidEvent

TRANSACTION_COMPLETED = "transaction.completed"
TRANSACTION_FAILED = "transaction.failed"
CHARGE_PAID = "charge.paid"
CHARGE_EXPIRED = "charge.expired"


@dataclass(frozen=True)
class TransactionCompleted:
    reference: str
    transaction_id: str | None = None
    type: str = TRANSACTION_COMPLETED


@dataclass(frozen=True)
class TransactionFailed:
    reference: str
    transaction_id: str | None = None
    error_message: str | None = None
    type: str = TRANSACTION_FAILED


@dataclass(frozen=True)
class ChargePaid:
    reference: str
    payer_id: str
    charge_id: str | None = None
    amount: Decimal | None = None
    type: str = CHARGE_PAID


@dataclass(frozen=True)
class ChargeExpired:
    reference: str
    type: str = CHARGE_EXPIRED


@dataclass(frozen=True)
class UnknownEvent:
    type: str


SettlementEvent = (
    TransactionCompleted | TransactionFailed | ChargePaid | ChargeExpired | UnknownEvent
)


def _required_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ErrInvalidEvent
    return value


def _optional_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if not isinstance(value, str):
        raise ErrInvalidEvent
    return value or None


def _optional_amount(data: dict[str, Any], key: str) -> Decimal | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool):
        raise ErrInvalidEvent
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ErrInvalidEvent from None


def event_from_dict(payload: dict[str, Any]) -> SettlementEvent:
    """Decode an already-parsed event envelope.

    Raises:
        WalletError: ``ErrInvalidEvent`` if the envelope or a known event's
            required fields are malformed.
    """
    event_type = payload.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ErrInvalidEvent
    data = payload.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ErrInvalidEvent

    if event_type == TRANSACTION_COMPLETED:
        return TransactionCompleted(
            reference=_required_str(data, "reference"),
            transaction_id=_optional_str(data, "transaction_id"),
        )
    if event_type == TRANSACTION_FAILED:
        return TransactionFailed(
            reference=_required_str(data, "reference"),
            transaction_id=_optional_str(data, "transaction_id"),
            error_message=_optional_str(data, "error_message"),
        )
    if event_type == CHARGE_PAID:
        return ChargePaid(
            reference=_required_str(data, "reference"),
            payer_id=_required_str(data, "payer_id"),
            charge_id=_optional_str(data, "charge_id"),
            amount=_optional_amount(data, "amount"),
        )
    if event_type == CHARGE_EXPIRED:
        return ChargeExpired(reference=_required_str(data, "reference"))
    return UnknownEvent(type=event_type)


def parse_event(raw_body: bytes) -> SettlementEvent:
    """Parse a verified raw webhook body into an event.

    Raises:
        WalletError: ``ErrInvalidEvent`` for non-JSON or malformed bodies.
    """
    try:
        payload = json.loads(raw_body)
    except (ValueError, UnicodeDecodeError):
        raise ErrInvalidEvent from None
    if not isinstance(payload, dict):
        raise ErrInvalidEvent
    return event_from_dict(payload)
