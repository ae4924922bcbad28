"""Account service: wallet holders, bearer tokens and the balance store.

Balances change only through :meth:`AccountService.apply_delta`, a single
conditional ``UPDATE`` that refuses to take a balance below zero. Checking
and applying happen in one statement, so two concurrent debits cannot both
pass a stale balance check.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import secrets
import uuid
import weakref
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError

from lzar_wallet.engine.models.account import Account
from lzar_wallet.errors.definitions import (
    ErrAccountExists,
    ErrInsufficientBalance,
    ErrRecipientNotFound,
    ErrUnauthorized,
    ErrWalletNotFound,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from lzar_wallet.engine.client import WalletEngine

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """Return the SHA-256 hex digest stored for a bearer token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AccountLocks:
    """Per-account asyncio locks.

    Held around check -> submit -> apply for debits so that requests
    handled by the same process queue up instead of racing. Locks are
    dropped once no coroutine references them.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[account_id] = lock
        return lock


class AccountService:
    """Business logic for accounts and balances."""

    def __init__(self, engine: WalletEngine) -> None:
        self._engine = engine

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create_account(
        self,
        email: str,
        *,
        first_name: str = "",
        last_name: str = "",
        phone: str | None = None,
    ) -> tuple[Account, str]:
        """Register an account and issue its bearer token.

        Returns:
            The persisted account and the plain token (shown once).

        Raises:
            WalletError: ``ErrAccountExists`` if the email or phone is taken.
        """
        token = secrets.token_urlsafe(32)
        account = Account(
            id=uuid.uuid4().hex,
            email=email.strip().lower(),
            phone=phone.strip() if phone else None,
            first_name=first_name,
            last_name=last_name,
            balance_cents=0,
            token_hash=hash_token(token),
            metadata_={},
        )
        async with self._engine.datastore.session() as session:
            session.add(account)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise ErrAccountExists from None
            await session.refresh(account)
        logger.info("Created account %s", account.id)
        return account, token

    async def get_account(self, account_id: str) -> Account | None:
        """Fetch an account by id."""
        async with self._engine.datastore.session() as session:
            return await session.get(Account, account_id)

    async def authenticate(self, token: str) -> Account:
        """Resolve a bearer token to its account.

        Raises:
            WalletError: ``ErrUnauthorized`` if the token is unknown.
        """
        if not token:
            raise ErrUnauthorized
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(Account).where(Account.token_hash == hash_token(token))
            )
            account = result.scalar_one_or_none()
        if account is None:
            raise ErrUnauthorized
        return account

    async def resolve_recipient(self, identifier: str) -> Account:
        """Find an account by id, email or phone number.

        Raises:
            WalletError: ``ErrRecipientNotFound`` if nothing matches.
        """
        ident = identifier.strip()
        if not ident:
            raise ErrRecipientNotFound
        async with self._engine.datastore.session() as session:
            result = await session.execute(
                select(Account).where(
                    or_(
                        Account.id == ident,
                        Account.email == ident.lower(),
                        Account.phone == ident,
                    )
                )
            )
            account = result.scalars().first()
        if account is None:
            raise ErrRecipientNotFound
        return account

    async def get_balance(self, account_id: str) -> int:
        """Return the current balance in cents.

        Raises:
            WalletError: ``ErrWalletNotFound`` if the account is missing.
        """
        async with self._engine.datastore.session() as session:
            balance = await session.scalar(
                select(Account.balance_cents).where(Account.id == account_id)
            )
        if balance is None:
            raise ErrWalletNotFound
        return balance

    async def count(self) -> int:
        async with self._engine.datastore.session() as session:
            return await session.scalar(select(func.count()).select_from(Account)) or 0

    async def total_balance_cents(self) -> int:
        """Sum of every account balance: the LZAR in circulation."""
        async with self._engine.datastore.session() as session:
            total = await session.scalar(select(func.coalesce(func.sum(Account.balance_cents), 0)))
        return int(total or 0)

    # ------------------------------------------------------------------
    # Balance store
    # ------------------------------------------------------------------

    async def apply_delta(self, session: AsyncSession, account_id: str, delta_cents: int) -> int:
        """Atomically add *delta_cents* to a balance inside *session*.

        The caller owns the transaction and must commit or roll back.

        Returns:
            The new balance in cents.

        Raises:
            WalletError: ``ErrWalletNotFound`` for unknown accounts,
                ``ErrInsufficientBalance`` if the result would be negative.
        """
        stmt = (
            update(Account)
            .where(
                Account.id == account_id,
                Account.balance_cents + delta_cents >= 0,
            )
            .values(balance_cents=Account.balance_cents + delta_cents)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        if result.rowcount == 0:
            exists = await session.scalar(select(Account.id).where(Account.id == account_id))
            if exists is None:
                raise ErrWalletNotFound
            raise ErrInsufficientBalance

        balance = await session.scalar(
            select(Account.balance_cents).where(Account.id == account_id)
        )
        return int(balance or 0)

    async def apply_deltas(
        self, session: AsyncSession, deltas: dict[str, int]
    ) -> dict[str, int]:
        """Apply several deltas as one unit inside *session*.

        Debits run first so a shortfall aborts before anything is credited;
        ties are ordered by account id to keep lock order stable across
        concurrent transactions.
        """
        ordered = sorted(deltas.items(), key=lambda item: (item[1] >= 0, item[0]))
        balances: dict[str, int] = {}
        for account_id, delta in ordered:
            if delta == 0:
                continue
            balances[account_id] = await self.apply_delta(session, account_id, delta)
        return balances
