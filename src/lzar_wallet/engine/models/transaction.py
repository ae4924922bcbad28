"""TransactionRecord model: the local system-of-record for money movements."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lzar_wallet.engine.models.base import Base, MetadataMixin, TimestampMixin


class TransactionRecord(Base, TimestampMixin, MetadataMixin):
    """One transfer, mint, redemption or charge payment.

    Created ``pending`` before the settlement call and moved to a terminal
    status exactly once by the ledger service.
    """

    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("amount_cents > 0", name="ck_transactions_amount"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Local reference id")
    sender_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True, comment="Null for mints"
    )
    recipient_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, index=True, comment="Null for redemptions"
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(16), nullable=False, default="LZAR")
    type: Mapped[str] = mapped_column(
        String(16), nullable=False, comment="transfer | mint | redeem | payment"
    )
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", index=True,
        comment="pending | completed | failed | cancelled",
    )
    external_id: Mapped[str | None] = mapped_column(
        String(128), nullable=True, index=True, comment="Settlement provider reference"
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<TransactionRecord id={self.id[:16]} type={self.type} status={self.status}>"
