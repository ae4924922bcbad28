"""API middleware: auth, CORS."""

from lzar_wallet.api.middleware.auth import AuthContext
from lzar_wallet.api.middleware.cors import setup_cors

__all__ = ["AuthContext", "setup_cors"]
