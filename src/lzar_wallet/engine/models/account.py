"""Account model: wallet holders and their LZAR balance."""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from lzar_wallet.engine.models.base import Base, MetadataMixin, TimestampMixin


class Account(Base, TimestampMixin, MetadataMixin):
    """A wallet holder identified by id, email or phone.

    The balance is kept in cents and is only ever mutated through
    :meth:`AccountService.apply_delta`, which refuses to go below zero.
    """

    __tablename__ = "accounts"
    __table_args__ = (CheckConstraint("balance_cents >= 0", name="ck_accounts_balance"),)

    id: Mapped[str] = mapped_column(String(64), primary_key=True, comment="Account ID")
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    balance_cents: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0, comment="Balance in cents"
    )
    token_hash: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, comment="SHA-256 of the bearer token"
    )

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.email

    def __repr__(self) -> str:
        return f"<Account id={self.id[:16]} balance_cents={self.balance_cents}>"
