"""Schema creation for development and tests.

Production deployments run the Alembic scripts instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from lzar_wallet.engine.models import ALL_MODELS, Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


async def run_auto_migrate(engine: AsyncEngine) -> None:
    """Create the account, transaction and charge tables if missing."""
    tables = [model.__table__ for model in ALL_MODELS]
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=tables)
