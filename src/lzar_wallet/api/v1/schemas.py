"""V1 API request/response Pydantic schemas.

These are the *API-layer* schemas: thin wrappers that define the HTTP
contract.  They deliberately do NOT inherit from SQLAlchemy models; the
endpoint code maps between ORM objects and these schemas.

Amounts are accepted as JSON numbers or strings and validated by the
service layer so that a bad amount yields ``invalid-amount`` (400) rather
than a schema error.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from decimal import Decimal  # noqa: TC003 - Pydantic needs this at runtime
from typing import Any

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Generic / Pagination
# ---------------------------------------------------------------------------


class PaginatedResponse(BaseModel):
    """Generic paginated list wrapper."""

    items: list[Any]
    total: int
    limit: int
    offset: int


class ErrorResponse(BaseModel):
    """Standard error body ``{"code": "...", "message": "..."}``."""

    code: str
    message: str


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class TransferRequest(BaseModel):
    """POST /api/v1/transfer."""

    amount: Decimal | str | None = None
    recipient: str | None = Field(None, description="Account id, email or phone")
    description: str | None = None


MAX_BATCH_TRANSFERS = 50


class BatchTransferRequest(BaseModel):
    """POST /api/v1/transfer/batch."""

    transfers: list[TransferRequest] = Field(..., min_length=1, max_length=MAX_BATCH_TRANSFERS)


class MintRequest(BaseModel):
    """POST /api/v1/mint."""

    amount: Decimal | str | None = None
    recipient_id: str | None = None
    description: str | None = None


class RedeemRequest(BaseModel):
    """POST /api/v1/redeem."""

    amount: Decimal | str | None = None


class ChargeCreateRequest(BaseModel):
    """POST /api/v1/charges."""

    amount: Decimal | str | None = None
    description: str | None = None
    payment_id: str | None = None


class QRDecodeRequest(BaseModel):
    """POST /api/v1/qr/decode."""

    payload: str


class AccountCreateRequest(BaseModel):
    """POST /api/v1/admin/accounts."""

    email: str = Field(..., min_length=3, max_length=255)
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TransactionResponse(BaseModel):
    """A ledger record as returned by the API."""

    id: str
    type: str
    status: str
    amount: Decimal
    currency: str
    sender_id: str | None = None
    recipient_id: str | None = None
    external_id: str | None = None
    description: str = ""
    error_message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    completed_at: datetime | None = None
    receipt_qr: str | None = None


class ChargeResponse(BaseModel):
    """A payment request as returned by the API."""

    id: str
    owner_id: str
    status: str
    amount: Decimal
    currency: str
    payment_id: str = ""
    external_id: str | None = None
    description: str = ""
    error_message: str | None = None
    payer_id: str | None = None
    expires_at: datetime
    paid_at: datetime | None = None
    created_at: datetime | None = None
    qr_payload: str


class BatchEntryResponse(BaseModel):
    """Outcome of one batch entry: the record, or the error it was rejected with."""

    index: int
    ok: bool
    transaction: dict[str, Any] | None = None
    error: ErrorResponse | None = None


class BatchTransferResponse(BaseModel):
    """POST /api/v1/transfer/batch."""

    items: list[BatchEntryResponse]
    succeeded: int
    failed: int


class FloatResponse(BaseModel):
    """GET /api/v1/admin/float."""

    total_float: Decimal
    available_float: Decimal
    pending_outflow: Decimal
    accounts: int
    currency: str


class WalletResponse(BaseModel):
    """GET /api/v1/wallet."""

    account_id: str
    email: str
    display_name: str
    balance: Decimal
    currency: str


class SettlementBalanceResponse(BaseModel):
    """GET /api/v1/wallet/settlement."""

    account_id: str
    balance: Decimal
    currency: str


class AccountCreatedResponse(BaseModel):
    """Account plus its bearer token (returned once)."""

    id: str
    email: str
    phone: str | None = None
    first_name: str = ""
    last_name: str = ""
    token: str


class QRDecodeResponse(BaseModel):
    """Decoded QR payload or the reason it was rejected."""

    ok: bool
    type: str | None = None
    intent: dict[str, Any] | None = None
    failure: str | None = None
    display: dict[str, str] | None = None


class WebhookAck(BaseModel):
    status: str = "ok"
