"""Datastore: owns the async engine and hands out ledger sessions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from lzar_wallet.datastore.engines import create_engine

if TYPE_CHECKING:
    from lzar_wallet.config.settings import DatabaseConfig

logger = logging.getLogger(__name__)

_ERR_NOT_OPEN = "Datastore is not open. Call open() first."


class Datastore:
    """Async datastore for accounts, transaction records and charges.

    Sessions do not expire attributes on commit, so records returned by the
    services stay readable after their session closes.

    Usage::

        ds = Datastore(db_config)
        await ds.open()
        async with ds.session() as session:
            ...
        await ds.close()
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._engine

    async def open(self) -> None:
        """Create the engine and session factory."""
        self._engine = create_engine(self._config)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Datastore opened (%s)", self._config.engine)

    async def close(self) -> None:
        """Dispose the engine and release all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    def session(self) -> AsyncSession:
        """Create a new async session.

        Raises:
            RuntimeError: If the datastore is not open.
        """
        if self._session_factory is None:
            raise RuntimeError(_ERR_NOT_OPEN)
        return self._session_factory()

    async def ping(self) -> bool:
        """Run ``SELECT 1``; False if the database cannot be reached."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Datastore ping failed", exc_info=True)
            return False
        return True

    @property
    def is_open(self) -> bool:
        return self._engine is not None
