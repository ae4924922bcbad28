"""CORS middleware configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

from lzar_wallet.api.middleware.auth import ADMIN_KEY_HEADER, AUTH_HEADER

if TYPE_CHECKING:
    from fastapi import FastAPI

# Custom headers the browser needs to send via CORS pre-flight.
_AUTH_HEADERS = [AUTH_HEADER, ADMIN_KEY_HEADER]


def setup_cors(app: FastAPI) -> None:
    """Add CORS middleware allowing all origins plus the auth headers."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*", *_AUTH_HEADERS],
    )
