"""Settlement webhooks: signature verification and event decoding."""

from lzar_wallet.webhooks.events import SettlementEvent, parse_event
from lzar_wallet.webhooks.verifier import SIGNATURE_HEADER, sign, verify

__all__ = ["SIGNATURE_HEADER", "SettlementEvent", "parse_event", "sign", "verify"]
