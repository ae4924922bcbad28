"""HMAC-SHA256 verification of inbound settlement webhooks.

The provider signs the exact request body and sends
``x-webhook-signature: sha256=<hex>``. Verification must run on the raw
bytes before any JSON parsing; re-serialising first would let formatting
differences slip through.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "x-webhook-signature"
SIGNATURE_PREFIX = "sha256="


def sign(raw_body: bytes, secret: str) -> str:
    """Return the ``sha256=<hex>`` signature for *raw_body*."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify(raw_body: bytes, signature_header: str | None, secret: str | None) -> bool:
    """Check *signature_header* against the HMAC of *raw_body*.

    Returns False when the header or secret is missing, or on mismatch.
    """
    if not signature_header or not secret:
        return False
    expected = sign(raw_body, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature_header.strip().encode("utf-8"))
