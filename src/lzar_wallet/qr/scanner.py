"""QR scan dispatch: turns scanned payloads into navigation handoffs.

The session is armed until a usable code is scanned. A payment request or
user profile disarms it exactly once, so a camera delivering the same code
several times in a row cannot trigger duplicate navigation. Unusable codes
leave it armed for another attempt.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from lzar_wallet.qr.codec import (
    DecodeFailure,
    PaymentRequestIntent,
    UserProfileIntent,
    decode,
)

logger = logging.getLogger(__name__)


class ScannerState(enum.StrEnum):
    ARMED = "armed"
    PROCESSING = "processing"


@dataclass(frozen=True)
class PaymentConfirmation:
    """Handoff to the payment-confirmation flow."""

    charge_id: str
    amount: int | float
    description: str | None
    merchant_name: str


@dataclass(frozen=True)
class SendMoney:
    """Handoff to the send-money flow."""

    user_id: str
    user_name: str


@dataclass(frozen=True)
class Unsupported:
    """The scanned code cannot be acted on; the scanner stays armed."""

    failure: DecodeFailure | None
    message: str


@dataclass(frozen=True)
class Ignored:
    """A scan arrived while a previous one is still being processed."""


ScanOutcome = PaymentConfirmation | SendMoney | Unsupported | Ignored


class QRScanSession:
    """Stateful scanner front-end for one scan screen."""

    def __init__(self) -> None:
        self._state = ScannerState.ARMED

    @property
    def state(self) -> ScannerState:
        return self._state

    @property
    def is_armed(self) -> bool:
        return self._state is ScannerState.ARMED

    def rearm(self) -> None:
        """Return to the armed state (e.g. after the user navigates back)."""
        self._state = ScannerState.ARMED

    def handle_scan(self, raw: str | bytes) -> ScanOutcome:
        """Decode *raw* and decide where the user goes next."""
        if self._state is not ScannerState.ARMED:
            return Ignored()

        result = decode(raw)
        intent = result.intent

        if isinstance(intent, PaymentRequestIntent):
            self._state = ScannerState.PROCESSING
            return PaymentConfirmation(
                charge_id=intent.charge_id,
                amount=intent.amount,
                description=intent.description,
                merchant_name=intent.merchant_name,
            )
        if isinstance(intent, UserProfileIntent):
            self._state = ScannerState.PROCESSING
            return SendMoney(user_id=intent.user_id, user_name=intent.user_name)

        if result.failure is DecodeFailure.MALFORMED:
            message = "Unable to read QR code data."
        else:
            message = "This QR code is not supported."
        logger.info("Unsupported QR scan (%s)", result.failure or "receipt")
        return Unsupported(failure=result.failure, message=message)
