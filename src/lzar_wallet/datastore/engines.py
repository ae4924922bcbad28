"""Database engine factory for the wallet ledger.

- PostgreSQL (asyncpg): pooled, ``READ COMMITTED`` so conditional
  ``UPDATE ... WHERE`` statements see rows committed by other workers.
- SQLite (aiosqlite): single-file or in-memory; writers wait on the
  database lock instead of failing immediately.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from lzar_wallet.config.settings import DatabaseEngine

if TYPE_CHECKING:
    from lzar_wallet.config.settings import DatabaseConfig

# Milliseconds a SQLite writer waits for the lock
SQLITE_BUSY_TIMEOUT_MS = 5000

_DRIVERS = {
    DatabaseEngine.SQLITE: "sqlite+aiosqlite",
    DatabaseEngine.POSTGRESQL: "postgresql+asyncpg",
}


def _check_driver(config: DatabaseConfig) -> None:
    scheme = config.dsn.split("://", 1)[0]
    expected = _DRIVERS[config.engine]
    if scheme != expected:
        msg = f"DSN scheme {scheme!r} does not match engine {config.engine} (want {expected!r})"
        raise ValueError(msg)


def _install_sqlite_pragmas(engine: AsyncEngine, *, in_memory: bool) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()


def create_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Raises:
        ValueError: If the DSN driver does not match ``config.engine``.
    """
    _check_driver(config)

    if config.engine == DatabaseEngine.SQLITE:
        engine = create_async_engine(config.dsn, echo=config.debug_sql)
        _install_sqlite_pragmas(engine, in_memory=":memory:" in config.dsn)
        return engine

    return create_async_engine(
        config.dsn,
        echo=config.debug_sql,
        pool_size=config.max_idle_connections,
        max_overflow=config.max_open_connections - config.max_idle_connections,
        pool_pre_ping=True,
        isolation_level="READ COMMITTED",
    )
