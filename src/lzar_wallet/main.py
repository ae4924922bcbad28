"""Application entry point for the LZAR wallet server."""

from __future__ import annotations

import os

import uvicorn

from lzar_wallet.config.settings import AppConfig


def main() -> None:
    """Start the LZAR wallet server."""
    config = AppConfig()
    reload = os.getenv("LZARWALLET_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "lzar_wallet.api.app:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
