"""V1 wallet endpoints.

Money movements (transfer, mint, redeem), payment requests (charges),
balances and transaction history for the authenticated account.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query

from lzar_wallet.api.dependencies import get_engine, require_user
from lzar_wallet.api.middleware.auth import AuthContext  # noqa: TC001
from lzar_wallet.api.v1.schemas import (
    BatchEntryResponse,
    BatchTransferRequest,
    BatchTransferResponse,
    ChargeCreateRequest,
    ChargeResponse,
    ErrorResponse,
    MintRequest,
    PaginatedResponse,
    RedeemRequest,
    SettlementBalanceResponse,
    TransactionResponse,
    TransferRequest,
    WalletResponse,
)
from lzar_wallet.engine.client import WalletEngine  # noqa: TC001
from lzar_wallet.engine.money import from_cents
from lzar_wallet.engine.services.reconciliation_service import TransferItem
from lzar_wallet.engine.status import TxStatus  # noqa: TC001
from lzar_wallet.qr.codec import encode, payment_request_for_charge, receipt_for_transaction

router = APIRouter(tags=["wallet"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def tx_response(t: Any, *, with_receipt: bool = False) -> dict:
    return TransactionResponse(
        id=t.id,
        type=t.type,
        status=t.status,
        amount=from_cents(t.amount_cents),
        currency=t.currency,
        sender_id=t.sender_id,
        recipient_id=t.recipient_id,
        external_id=t.external_id,
        description=t.description or "",
        error_message=t.error_message,
        metadata=t.metadata_ or {},
        created_at=t.created_at,
        completed_at=t.completed_at,
        receipt_qr=encode(receipt_for_transaction(t)) if with_receipt else None,
    ).model_dump(mode="json")


async def _charge_resp(engine: WalletEngine, c: Any) -> dict:
    owner = await engine.account_service.get_account(c.owner_id)
    merchant_name = owner.display_name if owner is not None else c.owner_id
    return ChargeResponse(
        id=c.id,
        owner_id=c.owner_id,
        status=c.status,
        amount=from_cents(c.amount_cents),
        currency=c.currency,
        payment_id=c.payment_id or "",
        external_id=c.external_id,
        description=c.description or "",
        error_message=c.error_message,
        payer_id=c.payer_id,
        expires_at=c.expires_at,
        paid_at=c.paid_at,
        created_at=c.created_at,
        qr_payload=encode(payment_request_for_charge(c, merchant_name)),
    ).model_dump(mode="json")


# ---------------------------------------------------------------------------
# Money movements
# ---------------------------------------------------------------------------


@router.post("/transfer")
async def transfer(
    body: TransferRequest,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Send LZAR to another account (by id, email or phone)."""
    record = await engine.reconciliation_service.transfer(
        ctx.account_id, body.amount, body.recipient, body.description
    )
    return tx_response(record)


@router.post("/transfer/batch")
async def batch_transfer(
    body: BatchTransferRequest,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Send several transfers at once; each entry succeeds or fails on its own."""
    outcomes = await engine.reconciliation_service.batch_transfer(
        ctx.account_id,
        [TransferItem(t.amount, t.recipient, t.description) for t in body.transfers],
    )
    items = [
        BatchEntryResponse(
            index=o.index,
            ok=o.ok,
            transaction=tx_response(o.record) if o.record is not None else None,
            error=(
                ErrorResponse(code=o.error.code, message=o.error.message)
                if o.error is not None
                else None
            ),
        )
        for o in outcomes
    ]
    succeeded = sum(1 for o in outcomes if o.ok)
    return BatchTransferResponse(
        items=items, succeeded=succeeded, failed=len(outcomes) - succeeded
    ).model_dump(mode="json")


@router.post("/mint")
async def mint(
    body: MintRequest,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Issue new tokens (defaults to the caller's own wallet)."""
    record = await engine.reconciliation_service.mint(
        ctx.account_id, body.amount, body.recipient_id, body.description
    )
    return tx_response(record)


@router.post("/redeem")
async def redeem(
    body: RedeemRequest,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Withdraw tokens back to fiat."""
    record = await engine.reconciliation_service.redeem(ctx.account_id, body.amount)
    return tx_response(record)


# ---------------------------------------------------------------------------
# Charges
# ---------------------------------------------------------------------------


@router.post("/charges")
async def create_charge(
    body: ChargeCreateRequest,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Create a payment request and return it with its QR payload."""
    charge = await engine.reconciliation_service.create_charge(
        ctx.account_id, body.amount, body.description, body.payment_id
    )
    return await _charge_resp(engine, charge)


@router.get("/charges/{charge_id}")
async def get_charge(
    charge_id: str,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Fetch a payment request; any authenticated payer may view it."""
    charge = await engine.reconciliation_service.get_charge(charge_id)
    return await _charge_resp(engine, charge)


# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------


@router.get("/wallet")
async def get_wallet(
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Local ledger balance of the authenticated account."""
    account = await engine.reconciliation_service.get_wallet(ctx.account_id)
    return WalletResponse(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
        balance=from_cents(account.balance_cents),
        currency=engine.config.currency,
    ).model_dump(mode="json")


@router.get("/wallet/settlement")
async def get_settlement_balance(
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Balance as reported by the settlement provider."""
    balance = await engine.settlement.get_balance(ctx.account_id)
    return SettlementBalanceResponse(
        account_id=balance.account_id,
        balance=balance.balance,
        currency=balance.currency,
    ).model_dump(mode="json")


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/transactions")
async def list_transactions(
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
    status: TxStatus | None = None,
) -> dict:
    """Sent and received records, newest first, optionally of one status."""
    items, total = await engine.reconciliation_service.list_history(
        ctx.account_id, limit=limit, offset=offset, status=status
    )
    return PaginatedResponse(
        items=[tx_response(t) for t in items],
        total=total,
        limit=limit,
        offset=offset,
    ).model_dump(mode="json")


@router.get("/transactions/{record_id}")
async def get_transaction(
    record_id: str,
    ctx: Annotated[AuthContext, Depends(require_user)],
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """A single record the caller took part in, with its receipt QR."""
    record = await engine.reconciliation_service.get_transaction(ctx.account_id, record_id)
    return tx_response(record, with_receipt=True)
