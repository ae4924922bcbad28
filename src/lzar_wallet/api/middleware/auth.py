"""Authentication: bearer tokens and the admin key.

- ``Authorization: Bearer <token>`` resolves the acting account
- ``x-admin-key`` must equal ``auth.admin_key`` for admin routes
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lzar_wallet.errors.definitions import ErrAdminRequired, ErrUnauthorized

if TYPE_CHECKING:
    from lzar_wallet.engine.client import WalletEngine

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

AUTH_HEADER = "authorization"
AUTH_SCHEME = "bearer"
ADMIN_KEY_HEADER = "x-admin-key"


# ---------------------------------------------------------------------------
# AuthContext: resolved per request
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthContext:
    """Authenticated account attached to the request."""

    account_id: str
    email: str = ""
    display_name: str = ""


# ---------------------------------------------------------------------------
# Authentication logic
# ---------------------------------------------------------------------------


def parse_bearer(header_value: str) -> str:
    """Extract the token from an ``Authorization`` header value.

    Returns an empty string when the header is missing or uses another scheme.
    """
    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != AUTH_SCHEME:
        return ""
    return token.strip()


async def authenticate_request(engine: WalletEngine, *, authorization: str = "") -> AuthContext:
    """Authenticate a request from its ``Authorization`` header.

    Raises:
        WalletError: ``ErrUnauthorized`` if the token is missing or unknown.
    """
    token = parse_bearer(authorization)
    if not token:
        raise ErrUnauthorized

    account = await engine.account_service.authenticate(token)
    return AuthContext(
        account_id=account.id,
        email=account.email,
        display_name=account.display_name,
    )


def require_admin_key(engine: WalletEngine, provided: str) -> None:
    """Raise unless *provided* matches the configured admin key.

    An empty configured key disables admin routes entirely.

    Raises:
        WalletError: ``ErrAdminRequired``.
    """
    expected = engine.config.auth.admin_key
    if not expected or not provided:
        raise ErrAdminRequired
    if not hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8")):
        raise ErrAdminRequired
