"""Ledger service: transaction and charge records and their transitions.

Records are inserted ``pending`` and moved with a single conditional
``UPDATE ... WHERE status IN (<legal sources>)``. A transition that matches
no row is a no-op: the record is already terminal (or was moved by a
concurrent request), which is what makes webhook replays harmless.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from sqlalchemy import and_, func, or_, select, update

from lzar_wallet.engine.models.charge import Charge
from lzar_wallet.engine.models.transaction import TransactionRecord
from lzar_wallet.engine.status import (
    ChargeStatus,
    TxStatus,
    TxType,
    charge_sources_for,
    is_terminal,
    tx_sources_for,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from lzar_wallet.engine.client import WalletEngine


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


class LedgerService:
    """Persistence and state machine for :class:`TransactionRecord` / :class:`Charge`."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    @property
    def _currency(self) -> str:
        return self._engine.config.currency

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_transaction(
        self,
        *,
        tx_type: TxType,
        amount_cents: int,
        sender_id: str | None = None,
        recipient_id: str | None = None,
        description: str = "",
    ) -> TransactionRecord:
        """Insert a new ``pending`` transaction record and commit it."""
        record = TransactionRecord(
            id=uuid.uuid4().hex,
            sender_id=sender_id,
            recipient_id=recipient_id,
            amount_cents=amount_cents,
            currency=self._currency,
            type=tx_type.value,
            status=TxStatus.PENDING.value,
            description=description,
            metadata_={},
        )
        async with self._engine.datastore.session() as session:
            session.add(record)
            await session.commit()
            await session.refresh(record)
        return record

    async def create_charge(
        self,
        *,
        owner_id: str,
        amount_cents: int,
        description: str = "",
        payment_id: str = "",
    ) -> Charge:
        """Insert a new ``pending`` charge expiring after the configured TTL."""
        ttl = timedelta(hours=self._engine.config.charge.ttl_hours)
        charge = Charge(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            payment_id=payment_id,
            amount_cents=amount_cents,
            currency=self._currency,
            status=ChargeStatus.PENDING.value,
            description=description,
            expires_at=utcnow() + ttl,
            metadata_={},
        )
        async with self._engine.datastore.session() as session:
            session.add(charge)
            await session.commit()
            await session.refresh(charge)
        return charge

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition_transaction(
        self,
        session: AsyncSession,
        record_id: str,
        target: TxStatus,
        *,
        external_id: str | None = None,
        **fields: Any,
    ) -> bool:
        """Move a transaction to *target* if its current status allows it.

        ``external_id`` is only written when the record has none yet.

        Returns:
            True if the record moved, False if the call was a no-op.
        """
        values: dict[str, Any] = {"status": target.value, **fields}
        if external_id:
            values["external_id"] = func.coalesce(TransactionRecord.external_id, external_id)
        stmt = (
            update(TransactionRecord)
            .where(
                TransactionRecord.id == record_id,
                TransactionRecord.status.in_(tx_sources_for(target)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def transition_charge(
        self,
        session: AsyncSession,
        charge_id: str,
        target: ChargeStatus,
        *,
        external_id: str | None = None,
        **fields: Any,
    ) -> bool:
        """Move a charge to *target* if its current status allows it."""
        values: dict[str, Any] = {"status": target.value, **fields}
        if external_id:
            values["external_id"] = func.coalesce(Charge.external_id, external_id)
        stmt = (
            update(Charge)
            .where(
                Charge.id == charge_id,
                Charge.status.in_(charge_sources_for(target)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def flag_for_reconciliation(
        self,
        record_id: str,
        *,
        external_id: str | None = None,
        reason: str | None = None,
        **details: Any,
    ) -> bool:
        """Mark a still-pending record as needing manual reconciliation.

        *details* are merged into the record metadata. Records that reached
        a terminal status in the meantime are left alone.

        Returns:
            True if the record was flagged.
        """
        async with self._engine.datastore.session() as session:
            record = await session.get(TransactionRecord, record_id)
            if record is None or is_terminal(record.status):
                return False
            if external_id and not record.external_id:
                record.external_id = external_id
            if reason:
                record.error_message = reason
            record.metadata_ = {
                **(record.metadata_ or {}),
                **details,
                "needs_reconciliation": True,
            }
            await session.commit()
        return True

    async def expire_charges(self, now: datetime | None = None) -> int:
        """Expire every open charge whose ``expires_at`` has passed.

        Returns:
            Number of charges expired.
        """
        now = now or utcnow()
        stmt = (
            update(Charge)
            .where(
                Charge.status.in_(charge_sources_for(ChargeStatus.EXPIRED)),
                Charge.expires_at < now,
            )
            .values(status=ChargeStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        async with self._engine.datastore.session() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount or 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_transaction(self, record_id: str) -> TransactionRecord | None:
        async with self._engine.datastore.session() as session:
            return await session.get(TransactionRecord, record_id)

    async def get_charge(self, charge_id: str) -> Charge | None:
        async with self._engine.datastore.session() as session:
            return await session.get(Charge, charge_id)

    async def list_transactions(
        self,
        account_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        status: TxStatus | None = None,
    ) -> tuple[Sequence[TransactionRecord], int]:
        """List records where *account_id* is sender or recipient, newest first.

        Args:
            status: Only return records currently in this status.

        Returns:
            The page of records and the total count.
        """
        criteria = or_(
            TransactionRecord.sender_id == account_id,
            TransactionRecord.recipient_id == account_id,
        )
        if status is not None:
            criteria = and_(criteria, TransactionRecord.status == status.value)
        async with self._engine.datastore.session() as session:
            total = await session.scalar(
                select(func.count()).select_from(TransactionRecord).where(criteria)
            )
            result = await session.execute(
                select(TransactionRecord)
                .where(criteria)
                .order_by(TransactionRecord.created_at.desc(), TransactionRecord.id)
                .limit(limit)
                .offset(offset)
            )
            return result.scalars().all(), total or 0

    async def list_pending(self, *, limit: int = 100) -> Sequence[TransactionRecord]:
        """Every record still ``pending``, oldest first."""
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(TransactionRecord)
                .where(TransactionRecord.status == TxStatus.PENDING.value)
                .order_by(TransactionRecord.created_at, TransactionRecord.id)
                .limit(limit)
            )
            return result.scalars().all()

    async def pending_outflow_cents(self) -> int:
        """Total amount of pending records that will debit a balance on completion."""
        async with self._engine.datastore.session() as session:
            total = await session.scalar(
                select(func.coalesce(func.sum(TransactionRecord.amount_cents), 0)).where(
                    TransactionRecord.status == TxStatus.PENDING.value,
                    TransactionRecord.type.in_([TxType.TRANSFER.value, TxType.REDEEM.value]),
                    TransactionRecord.sender_id.is_not(None),
                )
            )
            return int(total or 0)

    async def list_stale_pending(self, older_than: datetime) -> Sequence[TransactionRecord]:
        """Records still ``pending`` that were created before *older_than*."""
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(TransactionRecord)
                .where(
                    TransactionRecord.status == TxStatus.PENDING.value,
                    TransactionRecord.created_at < older_than,
                )
                .order_by(TransactionRecord.created_at)
            )
            return result.scalars().all()

    async def list_expirable_charges(self, now: datetime | None = None) -> Sequence[Charge]:
        """Open charges whose ``expires_at`` has passed."""
        now = now or utcnow()
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(Charge)
                .where(
                    Charge.status.in_(charge_sources_for(ChargeStatus.EXPIRED)),
                    Charge.expires_at < now,
                )
                .order_by(Charge.expires_at)
            )
            return result.scalars().all()
