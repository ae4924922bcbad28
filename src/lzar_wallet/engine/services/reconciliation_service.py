"""Reconciliation service: transfers, mints, redemptions, charges and webhooks.

Every money movement follows the same lifecycle:

1. Validate input and balances (no state is written on failure).
2. Create the local record ``pending``.
3. Submit to the settlement gateway with the record id as ``reference``.
4. On acceptance, settle: in one DB transaction move the record to
   ``completed`` and apply its balance deltas. If the record was already
   terminal, the deltas are skipped.
5. On gateway failure, mark the record ``failed``; no balance changes.

Webhook events drive the same transitions asynchronously.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from lzar_wallet.engine.models.charge import Charge
from lzar_wallet.engine.models.transaction import TransactionRecord
from lzar_wallet.engine.money import from_cents, to_cents
from lzar_wallet.engine.services.account_service import AccountLocks
from lzar_wallet.engine.services.ledger_service import utcnow
from lzar_wallet.engine.status import (
    ChargeStatus,
    TxStatus,
    TxType,
    can_transition_charge,
    can_transition_tx,
)
from lzar_wallet.errors.definitions import (
    ErrChargeNotFound,
    ErrInsufficientBalance,
    ErrLedgerInconsistent,
    ErrRecipientNotFound,
    ErrRecipientRequired,
    ErrSelfTransfer,
    ErrSettlementFailed,
    ErrTransactionNotFound,
    ErrWalletNotFound,
)
from lzar_wallet.errors.settlement_errors import SettlementError
from lzar_wallet.errors.wallet_errors import WalletError
from lzar_wallet.settlement.models import OperationKind, SubmitResult
from lzar_wallet.webhooks.events import (
    ChargeExpired,
    ChargePaid,
    SettlementEvent,
    TransactionCompleted,
    TransactionFailed,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import Any

    from lzar_wallet.engine.client import WalletEngine
    from lzar_wallet.engine.models.account import Account

logger = logging.getLogger(__name__)

# Attempts for the failure-marking status write after a gateway error
_STATUS_WRITE_ATTEMPTS = 3

# Webhook outcomes
APPLIED = "applied"
DUPLICATE = "duplicate"
IGNORED = "ignored"


@dataclass(frozen=True)
class TransferItem:
    """One entry of a batch transfer."""

    amount: Decimal | int | str | None
    recipient: str | None
    description: str | None = None


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one entry of a batch transfer: a record or the error it hit."""

    index: int
    record: TransactionRecord | None = None
    error: WalletError | None = None

    @property
    def ok(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class FloatSummary:
    """LZAR in circulation according to the local balance store."""

    total_cents: int
    pending_outflow_cents: int
    accounts: int

    @property
    def available_cents(self) -> int:
        return self.total_cents - self.pending_outflow_cents


def balance_deltas(record: TransactionRecord) -> dict[str, int]:
    """Balance changes (cents) implied by completing *record*."""
    deltas: dict[str, int] = {}
    amount = record.amount_cents
    if record.type in (TxType.TRANSFER, TxType.REDEEM) and record.sender_id:
        deltas[record.sender_id] = deltas.get(record.sender_id, 0) - amount
    if record.type in (TxType.TRANSFER, TxType.MINT, TxType.PAYMENT) and record.recipient_id:
        deltas[record.recipient_id] = deltas.get(record.recipient_id, 0) + amount
    return deltas


class ReconciliationService:
    """Orchestrates local records, the settlement gateway and balances."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine
        self._locks = AccountLocks()

    # ------------------------------------------------------------------
    # User-initiated operations
    # ------------------------------------------------------------------

    async def transfer(
        self,
        sender_id: str,
        amount: Decimal | int | str,
        recipient: str | None,
        description: str | None = None,
    ) -> TransactionRecord:
        """Move *amount* from *sender_id* to the account *recipient* names.

        *recipient* may be an account id, email or phone number.

        Raises:
            WalletError: Validation, not-found, insufficient balance or
                settlement failures (see ``errors.definitions``).
        """
        cents = to_cents(amount)
        if not recipient or not recipient.strip():
            raise ErrRecipientRequired
        target = await self._engine.account_service.resolve_recipient(recipient)
        if target.id == sender_id:
            raise ErrSelfTransfer

        async with self._locks.lock(sender_id):
            await self._check_balance(sender_id, cents)
            record = await self._engine.ledger_service.create_transaction(
                tx_type=TxType.TRANSFER,
                amount_cents=cents,
                sender_id=sender_id,
                recipient_id=target.id,
                description=description or "Transfer",
            )
            result = await self._submit_transaction(
                record,
                OperationKind.TRANSFER,
                {"from": sender_id, "to": target.id, "amount": float(from_cents(cents))},
            )
            settled, _ = await self._settle(record.id, result.external_id)
        logger.info("Transfer %s completed: %s -> %s", record.id, sender_id, target.id)
        return settled

    async def batch_transfer(
        self, sender_id: str, transfers: Sequence[TransferItem]
    ) -> list[BatchOutcome]:
        """Run several transfers from *sender_id* in order.

        Every entry goes through the full :meth:`transfer` lifecycle on its
        own, so one rejected entry does not undo or block the others.
        Errors that are not ``WalletError`` still propagate.
        """
        outcomes: list[BatchOutcome] = []
        for index, item in enumerate(transfers):
            try:
                record = await self.transfer(
                    sender_id, item.amount, item.recipient, item.description
                )
            except WalletError as exc:
                logger.info("Batch entry %d from %s rejected: %s", index, sender_id, exc.code)
                outcomes.append(BatchOutcome(index=index, error=exc))
            else:
                outcomes.append(BatchOutcome(index=index, record=record))
        return outcomes

    async def mint(
        self,
        actor_id: str,
        amount: Decimal | int | str,
        recipient_id: str | None = None,
        description: str | None = None,
    ) -> TransactionRecord:
        """Issue new tokens to *recipient_id* (defaults to the actor)."""
        cents = to_cents(amount)
        target_id = recipient_id or actor_id
        if await self._engine.account_service.get_account(target_id) is None:
            raise ErrRecipientNotFound if recipient_id else ErrWalletNotFound

        record = await self._engine.ledger_service.create_transaction(
            tx_type=TxType.MINT,
            amount_cents=cents,
            recipient_id=target_id,
            description=description or "Token mint",
        )
        result = await self._submit_transaction(
            record,
            OperationKind.MINT,
            {"to": target_id, "amount": float(from_cents(cents))},
        )
        settled, _ = await self._settle(record.id, result.external_id)
        logger.info("Mint %s completed for %s", record.id, target_id)
        return settled

    async def redeem(self, user_id: str, amount: Decimal | int | str) -> TransactionRecord:
        """Withdraw *amount* of the user's tokens back to fiat."""
        cents = to_cents(amount)
        async with self._locks.lock(user_id):
            await self._check_balance(user_id, cents)
            record = await self._engine.ledger_service.create_transaction(
                tx_type=TxType.REDEEM,
                amount_cents=cents,
                sender_id=user_id,
                description="Token redemption",
            )
            result = await self._submit_transaction(
                record,
                OperationKind.REDEEM,
                {"from": user_id, "amount": float(from_cents(cents))},
            )
            settled, _ = await self._settle(record.id, result.external_id)
        logger.info("Redemption %s completed for %s", record.id, user_id)
        return settled

    async def create_charge(
        self,
        owner_id: str,
        amount: Decimal | int | str,
        description: str | None = None,
        payment_id: str | None = None,
    ) -> Charge:
        """Create a payment request and activate it with the provider."""
        cents = to_cents(amount)
        if await self._engine.account_service.get_account(owner_id) is None:
            raise ErrWalletNotFound

        ledger = self._engine.ledger_service
        charge = await ledger.create_charge(
            owner_id=owner_id,
            amount_cents=cents,
            description=description or "Payment request",
            payment_id=payment_id or "",
        )
        payload = {
            "merchant_id": owner_id,
            "payment_id": payment_id or charge.id,
            "amount": float(from_cents(cents)),
            "description": description,
        }
        try:
            result = await self._engine.settlement.submit(
                OperationKind.CHARGE, payload, reference=charge.id
            )
        except SettlementError as exc:
            await self._mark_charge_failed(charge.id, exc.message)
            raise ErrSettlementFailed from exc
        except Exception as exc:
            await self._mark_charge_failed(charge.id, str(exc) or type(exc).__name__)
            raise

        async with self._engine.datastore.session() as session:
            await ledger.transition_charge(
                session, charge.id, ChargeStatus.ACTIVE, external_id=result.external_id or None
            )
            await session.commit()
        logger.info("Charge %s active for %s", charge.id, owner_id)
        activated = await ledger.get_charge(charge.id)
        assert activated is not None
        return activated

    # ------------------------------------------------------------------
    # Webhook-driven reconciliation
    # ------------------------------------------------------------------

    async def handle_event(self, event: SettlementEvent) -> str:
        """Apply an inbound settlement event.

        Returns:
            ``"applied"``, ``"duplicate"`` (record already in a terminal
            state) or ``"ignored"`` (unknown type or reference).
        """
        if isinstance(event, TransactionCompleted):
            outcome = await self._on_transaction_completed(event)
        elif isinstance(event, TransactionFailed):
            outcome = await self._on_transaction_failed(event)
        elif isinstance(event, ChargePaid):
            outcome = await self._on_charge_paid(event)
        elif isinstance(event, ChargeExpired):
            outcome = await self._on_charge_expired(event)
        else:
            logger.info("Unhandled webhook event: %s", event.type)
            outcome = IGNORED

        metrics = self._engine.metrics
        if metrics:
            metrics.webhook_received(event.type, outcome)
        return outcome

    async def _on_transaction_completed(self, event: TransactionCompleted) -> str:
        record = await self._engine.ledger_service.get_transaction(event.reference)
        if record is None:
            logger.warning("transaction.completed for unknown reference %s", event.reference)
            return IGNORED
        if not can_transition_tx(record.status, TxStatus.COMPLETED):
            return DUPLICATE
        _, moved = await self._settle(event.reference, event.transaction_id)
        return APPLIED if moved else DUPLICATE

    async def _on_transaction_failed(self, event: TransactionFailed) -> str:
        ledger = self._engine.ledger_service
        record = await ledger.get_transaction(event.reference)
        if record is None:
            logger.warning("transaction.failed for unknown reference %s", event.reference)
            return IGNORED
        if not can_transition_tx(record.status, TxStatus.FAILED):
            return DUPLICATE
        async with self._engine.datastore.session() as session:
            moved = await ledger.transition_transaction(
                session,
                event.reference,
                TxStatus.FAILED,
                external_id=event.transaction_id,
                error_message=event.error_message or "settlement failed",
            )
            await session.commit()
        if moved:
            logger.info("Transaction %s failed at provider", event.reference)
        return APPLIED if moved else DUPLICATE

    async def _on_charge_paid(self, event: ChargePaid) -> str:
        ledger = self._engine.ledger_service
        now = utcnow()
        async with self._engine.datastore.session() as session:
            charge = await session.get(Charge, event.reference)
            if charge is None:
                logger.warning("charge.paid for unknown reference %s", event.reference)
                return IGNORED
            if event.amount is not None and to_cents_or_none(event.amount) != charge.amount_cents:
                logger.warning(
                    "charge.paid amount %s differs from charge %s amount %s",
                    event.amount, charge.id, from_cents(charge.amount_cents),
                )

            moved = await ledger.transition_charge(
                session,
                charge.id,
                ChargeStatus.PAID,
                external_id=event.charge_id,
                payer_id=event.payer_id,
                paid_at=now,
            )
            if not moved:
                await session.rollback()
                logger.info("Ignoring replayed charge.paid for %s", event.reference)
                return DUPLICATE

            payment = TransactionRecord(
                id=uuid.uuid4().hex,
                sender_id=event.payer_id,
                recipient_id=charge.owner_id,
                amount_cents=charge.amount_cents,
                currency=charge.currency,
                type=TxType.PAYMENT.value,
                status=TxStatus.COMPLETED.value,
                description="Charge payment",
                external_id=event.charge_id or charge.external_id,
                completed_at=now,
                metadata_={"charge_id": charge.id},
            )
            session.add(payment)
            await self._engine.account_service.apply_deltas(session, balance_deltas(payment))
            await session.commit()
        logger.info("Charge %s paid by %s", event.reference, event.payer_id)
        return APPLIED

    async def _on_charge_expired(self, event: ChargeExpired) -> str:
        ledger = self._engine.ledger_service
        charge = await ledger.get_charge(event.reference)
        if charge is None:
            logger.warning("charge.expired for unknown reference %s", event.reference)
            return IGNORED
        if not can_transition_charge(charge.status, ChargeStatus.EXPIRED):
            return DUPLICATE
        async with self._engine.datastore.session() as session:
            moved = await ledger.transition_charge(session, event.reference, ChargeStatus.EXPIRED)
            await session.commit()
        return APPLIED if moved else DUPLICATE

    # ------------------------------------------------------------------
    # Queries and sweeps
    # ------------------------------------------------------------------

    async def get_wallet(self, account_id: str) -> Account:
        account = await self._engine.account_service.get_account(account_id)
        if account is None:
            raise ErrWalletNotFound
        return account

    async def list_history(
        self,
        account_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        status: TxStatus | None = None,
    ) -> tuple[Sequence[TransactionRecord], int]:
        return await self._engine.ledger_service.list_transactions(
            account_id, limit=limit, offset=offset, status=status
        )

    async def list_pending(self, *, limit: int = 100) -> Sequence[TransactionRecord]:
        """Every record still awaiting settlement, oldest first."""
        return await self._engine.ledger_service.list_pending(limit=limit)

    async def get_float(self) -> FloatSummary:
        """Circulating supply and the part of it not committed to pending debits."""
        return FloatSummary(
            total_cents=await self._engine.account_service.total_balance_cents(),
            pending_outflow_cents=await self._engine.ledger_service.pending_outflow_cents(),
            accounts=await self._engine.account_service.count(),
        )

    async def get_transaction(self, account_id: str, record_id: str) -> TransactionRecord:
        """Fetch a record the account took part in.

        Raises:
            WalletError: ``ErrTransactionNotFound`` if missing or not a party.
        """
        record = await self._engine.ledger_service.get_transaction(record_id)
        if record is None or account_id not in (record.sender_id, record.recipient_id):
            raise ErrTransactionNotFound
        return record

    async def get_charge(self, charge_id: str) -> Charge:
        charge = await self._engine.ledger_service.get_charge(charge_id)
        if charge is None:
            raise ErrChargeNotFound
        return charge

    async def expire_charges(self, now: datetime | None = None) -> int:
        count = await self._engine.ledger_service.expire_charges(now)
        if count:
            logger.info("Expired %d charges", count)
        return count

    async def stale_pending(self, older_than_seconds: int) -> Sequence[TransactionRecord]:
        """Records stuck ``pending`` longer than *older_than_seconds*."""
        cutoff = utcnow() - timedelta(seconds=older_than_seconds)
        return await self._engine.ledger_service.list_stale_pending(cutoff)

    async def reconcile_stale_pending(self, older_than_seconds: int) -> dict[str, int]:
        """Resolve records stuck ``pending`` against the provider's view.

        A record the provider reports ``completed`` is settled through the
        same exactly-once path a webhook takes, and one reported ``failed``
        is marked failed. Anything else, including records that never got
        an ``external_id``, stays pending and is flagged
        ``needs_reconciliation``.

        Returns:
            Counts of records ``completed``, ``failed`` and ``flagged``.
        """
        counts = {"completed": 0, "failed": 0, "flagged": 0}
        ledger = self._engine.ledger_service
        for record in await self.stale_pending(older_than_seconds):
            provider_status = await self._provider_status(record)
            if provider_status == TxStatus.COMPLETED:
                try:
                    _, moved = await self._settle(record.id, record.external_id)
                except WalletError:
                    counts["flagged"] += 1
                    continue
                counts["completed"] += int(moved)
            elif provider_status == TxStatus.FAILED:
                async with self._engine.datastore.session() as session:
                    moved = await ledger.transition_transaction(
                        session,
                        record.id,
                        TxStatus.FAILED,
                        error_message="settlement failed (reported by provider)",
                    )
                    await session.commit()
                counts["failed"] += int(moved)
            elif await ledger.flag_for_reconciliation(
                record.id, provider_status=provider_status
            ):
                counts["flagged"] += 1
        return counts

    async def _provider_status(self, record: TransactionRecord) -> str | None:
        if not record.external_id:
            return None
        try:
            data = await self._engine.settlement.get_transaction(record.external_id)
        except SettlementError as exc:
            logger.warning("Provider lookup for %s failed: %s", record.id, exc.message)
            return None
        status = data.get("status")
        return str(status).lower() if status else None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _check_balance(self, account_id: str, cents: int) -> None:
        balance = await self._engine.account_service.get_balance(account_id)
        if balance < cents:
            raise ErrInsufficientBalance

    async def _submit_transaction(
        self,
        record: TransactionRecord,
        kind: OperationKind,
        payload: dict[str, Any],
    ) -> SubmitResult:
        """Submit *record* to the gateway, marking it failed on any error.

        A submit can error after the provider already settled the operation
        and its ``transaction.completed`` webhook completed the record. The
        failure mark is then a no-op and the completed record wins.
        """
        try:
            return await self._engine.settlement.submit(kind, payload, reference=record.id)
        except SettlementError as exc:
            completed = await self._fail_unless_completed(record.id, exc.message)
            if completed is None:
                raise ErrSettlementFailed from exc
        except Exception as exc:
            completed = await self._fail_unless_completed(
                record.id, str(exc) or type(exc).__name__
            )
            if completed is None:
                raise
        logger.warning(
            "Submit for %s errored but the record was already completed", record.id
        )
        return SubmitResult(external_id=completed.external_id or "")

    async def _fail_unless_completed(
        self, record_id: str, message: str
    ) -> TransactionRecord | None:
        """Mark *record_id* failed; return it instead if it had already completed."""
        await self._mark_transaction_failed(record_id, message)
        current = await self._engine.ledger_service.get_transaction(record_id)
        if current is not None and current.status == TxStatus.COMPLETED:
            return current
        return None

    async def _settle(
        self, record_id: str, external_id: str | None
    ) -> tuple[TransactionRecord, bool]:
        """Complete a pending record and apply its deltas in one DB transaction.

        Returns:
            The refreshed record and whether this call moved it.

        Raises:
            WalletError: ``ErrLedgerInconsistent`` if the deltas could not be
                applied; the record stays ``pending`` and is flagged.
        """
        ledger = self._engine.ledger_service
        async with self._engine.datastore.session() as session:
            record = await session.get(TransactionRecord, record_id)
            if record is None:
                raise ErrTransactionNotFound
            try:
                moved = await ledger.transition_transaction(
                    session,
                    record_id,
                    TxStatus.COMPLETED,
                    external_id=external_id or None,
                    completed_at=utcnow(),
                )
                if moved:
                    await self._engine.account_service.apply_deltas(
                        session, balance_deltas(record)
                    )
                await session.commit()
            except WalletError as exc:
                await session.rollback()
                logger.error(
                    "Settlement accepted %s but balances could not be applied: %s",
                    record_id, exc.message,
                )
                await ledger.flag_for_reconciliation(
                    record_id, external_id=external_id, reason=exc.message
                )
                raise ErrLedgerInconsistent from exc

        if not moved:
            logger.info("Transaction %s already settled; skipping balance update", record_id)
        settled = await ledger.get_transaction(record_id)
        assert settled is not None
        return settled, moved

    async def _mark_transaction_failed(self, record_id: str, message: str) -> None:
        ledger = self._engine.ledger_service

        async def write() -> None:
            async with self._engine.datastore.session() as session:
                await ledger.transition_transaction(
                    session, record_id, TxStatus.FAILED, error_message=message
                )
                await session.commit()

        await self._write_status_with_retry(record_id, write)

    async def _mark_charge_failed(self, charge_id: str, message: str) -> None:
        ledger = self._engine.ledger_service

        async def write() -> None:
            async with self._engine.datastore.session() as session:
                await ledger.transition_charge(
                    session, charge_id, ChargeStatus.FAILED, error_message=message
                )
                await session.commit()

        await self._write_status_with_retry(charge_id, write)

    @staticmethod
    async def _write_status_with_retry(record_id: str, write: Any) -> None:
        for attempt in range(1, _STATUS_WRITE_ATTEMPTS + 1):
            try:
                await write()
                return
            except Exception:
                logger.exception(
                    "Failed to mark %s failed (attempt %d/%d)",
                    record_id, attempt, _STATUS_WRITE_ATTEMPTS,
                )
        logger.error("Record %s left pending after settlement failure", record_id)


def to_cents_or_none(amount: Decimal) -> int | None:
    try:
        return to_cents(amount)
    except WalletError:
        return None
