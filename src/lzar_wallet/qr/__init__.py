"""QR payment intents: codec and scan dispatch."""

from lzar_wallet.qr.codec import (
    DecodeFailure,
    DecodeResult,
    IntentType,
    PaymentRequestIntent,
    QRIntent,
    TransactionReceiptIntent,
    UserProfileIntent,
    decode,
    encode,
)
from lzar_wallet.qr.scanner import QRScanSession, ScannerState

__all__ = [
    "DecodeFailure",
    "DecodeResult",
    "IntentType",
    "PaymentRequestIntent",
    "QRIntent",
    "QRScanSession",
    "ScannerState",
    "TransactionReceiptIntent",
    "UserProfileIntent",
    "decode",
    "encode",
]
