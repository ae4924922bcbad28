"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest
from starlette.responses import Response

from lzar_wallet import __version__
from lzar_wallet.api.middleware.cors import setup_cors
from lzar_wallet.api.v1 import v1_router
from lzar_wallet.config.settings import AppConfig
from lzar_wallet.engine.client import WalletEngine
from lzar_wallet.errors.wallet_errors import WalletError
from lzar_wallet.metrics.collector import EngineMetrics
from lzar_wallet.metrics.middleware import PrometheusMiddleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the wallet engine for the lifetime of the app.

    The engine is published on ``app.state.engine`` only once the store is
    migrated and the settlement client is connected.
    """
    config: AppConfig = app.state.config
    engine = WalletEngine(config, metrics=app.state.metrics)

    try:
        await engine.initialize()
        app.state.engine = engine
        logger.info("LZAR wallet engine initialized")
        yield
    finally:
        await engine.close()
        logger.info("LZAR wallet engine shut down")


def create_app(*, config: AppConfig | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Args:
        config: Optional AppConfig. If *None*, a default config is created
            from environment variables.
    """
    if config is None:
        config = AppConfig()

    app = FastAPI(
        title="lzar-wallet",
        version=__version__,
        description="LZAR stablecoin wallet settlement service",
        lifespan=_lifespan,
    )

    # Store config and metrics on app.state for lifespan access
    app.state.config = config
    app.state.metrics = EngineMetrics()

    # -- Middleware --
    setup_cors(app)
    if config.metrics.enabled:
        app.add_middleware(PrometheusMiddleware, registry=app.state.metrics.registry)

    # -- Error handler --
    @app.exception_handler(WalletError)
    async def _wallet_error_handler(request: Request, exc: WalletError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "message": exc.message},
        )

    # -- Base routes --
    @app.get("/health", tags=["base"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", tags=["base"], include_in_schema=False)
    async def metrics_endpoint() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=generate_latest(app.state.metrics.registry),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # -- Mount v1 API --
    app.include_router(v1_router)

    return app
