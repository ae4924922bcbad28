"""V1 QR endpoints."""

from __future__ import annotations

import dataclasses

from fastapi import APIRouter

from lzar_wallet.api.v1.schemas import QRDecodeRequest, QRDecodeResponse
from lzar_wallet.qr.codec import decode, format_display

router = APIRouter(prefix="/qr", tags=["qr"])


@router.post("/decode")
async def decode_qr(body: QRDecodeRequest) -> dict:
    """Decode a scanned payload; invalid input is reported, never raised."""
    result = decode(body.payload)
    if result.intent is None:
        return QRDecodeResponse(
            ok=False,
            failure=result.failure.value if result.failure else None,
        ).model_dump(mode="json")

    intent = result.intent
    return QRDecodeResponse(
        ok=True,
        type=intent.type.value,
        intent=dataclasses.asdict(intent),
        display=dataclasses.asdict(format_display(intent)),
    ).model_dump(mode="json")
