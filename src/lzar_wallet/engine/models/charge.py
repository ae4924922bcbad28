"""Charge model: merchant payment requests with an expiry."""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - SQLAlchemy needs this at runtime for Mapped[datetime]

from sqlalchemy import BigInteger, CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lzar_wallet.engine.models.base import Base, MetadataMixin, TimestampMixin


class Charge(Base, TimestampMixin, MetadataMixin):
    """A payment request owned by a merchant account.

    Becomes ``active`` once the settlement provider accepts it, and ``paid``
    (with a companion ``payment`` transaction) or ``expired`` afterwards.
    """

    __tablename__ = "charges"
    __table_args__ = (CheckConstraint("amount_cents > 0", name="ck_charges_amount"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Local reference id")
    owner_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payment_id: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(16), nullable=False, default="LZAR")
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default="pending", index=True,
        comment="pending | active | paid | expired | failed",
    )
    external_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    payer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<Charge id={self.id[:16]} status={self.status}>"
