"""V1 admin endpoints.

Operator-only account provisioning and ledger oversight, guarded by
``x-admin-key``.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from lzar_wallet.api.dependencies import get_engine, require_admin
from lzar_wallet.api.v1.schemas import (
    AccountCreatedResponse,
    AccountCreateRequest,
    FloatResponse,
)
from lzar_wallet.api.v1.wallet import tx_response
from lzar_wallet.engine.client import WalletEngine  # noqa: TC001
from lzar_wallet.engine.money import from_cents

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/accounts")
async def create_account(
    body: AccountCreateRequest,
    engine: Annotated[WalletEngine, Depends(get_engine)],
) -> dict:
    """Create an account and return its bearer token (shown once)."""
    account, token = await engine.account_service.create_account(
        body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    return AccountCreatedResponse(
        id=account.id,
        email=account.email,
        phone=account.phone,
        first_name=account.first_name,
        last_name=account.last_name,
        token=token,
    ).model_dump(mode="json")


@router.get("/transactions/pending")
async def list_pending(
    engine: Annotated[WalletEngine, Depends(get_engine)],
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
) -> list[dict]:
    """Records across all accounts still awaiting settlement, oldest first."""
    records = await engine.reconciliation_service.list_pending(limit=limit)
    return [tx_response(r) for r in records]


@router.get("/float")
async def get_float(engine: Annotated[WalletEngine, Depends(get_engine)]) -> dict:
    """Total LZAR in circulation and the part not held by pending debits."""
    summary = await engine.reconciliation_service.get_float()
    return FloatResponse(
        total_float=from_cents(summary.total_cents),
        available_float=from_cents(summary.available_cents),
        pending_outflow=from_cents(summary.pending_outflow_cents),
        accounts=summary.accounts,
        currency=engine.config.currency,
    ).model_dump(mode="json")
