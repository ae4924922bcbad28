"""FastAPI dependency injection helpers.

Provides ``Depends()``-compatible callables for engine access and
authentication in route handlers.

Usage in a route::

    @router.get("/wallet")
    async def get_wallet(
        ctx: AuthContext = Depends(require_user),
        engine: WalletEngine = Depends(get_engine),
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from lzar_wallet.api.middleware.auth import (
    ADMIN_KEY_HEADER,
    AUTH_HEADER,
    AuthContext,
    authenticate_request,
    require_admin_key,
)
from lzar_wallet.engine.client import WalletEngine  # noqa: TC001
from lzar_wallet.errors.definitions import ErrUnauthorized

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def get_engine(request: Request) -> WalletEngine:
    """Retrieve the engine from ``app.state``.

    The engine is stored on ``app.state.engine`` during lifespan startup.

    Raises:
        ErrUnauthorized: If the engine is not initialized (should never happen
        after startup).
    """
    engine: WalletEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        raise ErrUnauthorized
    return engine


# ---------------------------------------------------------------------------
# Auth context
# ---------------------------------------------------------------------------


async def require_user(
    engine: Annotated[WalletEngine, Depends(get_engine)],
    authorization: Annotated[str, Header(alias=AUTH_HEADER)] = "",
) -> AuthContext:
    """Dependency that resolves the bearer token to the acting account."""
    return await authenticate_request(engine, authorization=authorization)


def require_admin(
    engine: Annotated[WalletEngine, Depends(get_engine)],
    x_admin_key: Annotated[str, Header(alias=ADMIN_KEY_HEADER)] = "",
) -> None:
    """Dependency that requires the operator admin key.

    Raises:
        WalletError: 403 if the key is missing or wrong.
    """
    require_admin_key(engine, x_admin_key)
