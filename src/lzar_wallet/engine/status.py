"""Transaction and charge lifecycle: statuses and legal transitions.

Transitions are one-directional; a record in a terminal status never moves
again. The ledger service enforces these tables with conditional updates.

    transaction: pending -> completed | failed | cancelled
    charge:      pending -> active | failed | paid | expired
                 active  -> paid | expired
"""

from __future__ import annotations

import enum


class TxType(enum.StrEnum):
    """Kind of money movement."""

    TRANSFER = "transfer"
    MINT = "mint"
    REDEEM = "redeem"
    PAYMENT = "payment"


class TxStatus(enum.StrEnum):
    """TransactionRecord status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ChargeStatus(enum.StrEnum):
    """Charge status."""

    PENDING = "pending"
    ACTIVE = "active"
    PAID = "paid"
    EXPIRED = "expired"
    FAILED = "failed"


TX_TRANSITIONS: dict[TxStatus, frozenset[TxStatus]] = {
    TxStatus.PENDING: frozenset({TxStatus.COMPLETED, TxStatus.FAILED, TxStatus.CANCELLED}),
}

CHARGE_TRANSITIONS: dict[ChargeStatus, frozenset[ChargeStatus]] = {
    ChargeStatus.PENDING: frozenset(
        {ChargeStatus.ACTIVE, ChargeStatus.FAILED, ChargeStatus.PAID, ChargeStatus.EXPIRED}
    ),
    ChargeStatus.ACTIVE: frozenset({ChargeStatus.PAID, ChargeStatus.EXPIRED}),
}

TERMINAL_STATUSES: frozenset[str] = frozenset(
    {
        TxStatus.COMPLETED,
        TxStatus.FAILED,
        TxStatus.CANCELLED,
        ChargeStatus.PAID,
        ChargeStatus.EXPIRED,
    }
)


def can_transition_tx(current: str, target: str) -> bool:
    """Return True if a transaction may move from *current* to *target*."""
    try:
        return TxStatus(target) in TX_TRANSITIONS.get(TxStatus(current), frozenset())
    except ValueError:
        return False


def can_transition_charge(current: str, target: str) -> bool:
    """Return True if a charge may move from *current* to *target*."""
    try:
        return ChargeStatus(target) in CHARGE_TRANSITIONS.get(ChargeStatus(current), frozenset())
    except ValueError:
        return False


def tx_sources_for(target: TxStatus) -> list[str]:
    """Statuses from which a transaction may reach *target*."""
    return [src.value for src, targets in TX_TRANSITIONS.items() if target in targets]


def charge_sources_for(target: ChargeStatus) -> list[str]:
    """Statuses from which a charge may reach *target*."""
    return [src.value for src, targets in CHARGE_TRANSITIONS.items() if target in targets]


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES
