"""V1 settlement webhook receiver.

The signature is checked on the raw body before anything is parsed. Bad
signatures get 401 and are never processed; events we do not know, or
that reference records we do not have, are acknowledged so the provider
stops retrying them.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from lzar_wallet.api.dependencies import get_engine
from lzar_wallet.api.v1.schemas import WebhookAck
from lzar_wallet.engine.client import WalletEngine  # noqa: TC001
from lzar_wallet.errors.definitions import ErrInvalidSignature
from lzar_wallet.webhooks import SIGNATURE_HEADER, parse_event, verify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/settlement")
async def settlement_webhook(
    request: Request,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Receive a signed event from the settlement provider."""
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not verify(raw_body, signature, engine.config.settlement.webhook_secret):
        logger.warning("Rejected settlement webhook with invalid signature")
        if engine.metrics:
            engine.metrics.webhook_received("unknown", "rejected")
        raise ErrInvalidSignature

    event = parse_event(raw_body)
    outcome = await engine.reconciliation_service.handle_event(event)
    logger.info("Settlement webhook %s: %s", event.type, outcome)
    return WebhookAck().model_dump()
