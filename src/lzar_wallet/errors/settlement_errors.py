"""Settlement gateway errors."""

from __future__ import annotations

from lzar_wallet.errors.wallet_errors import WalletError


class SettlementError(WalletError):
    """Error from the external stablecoin settlement API."""

    def __init__(self, message: str, *, status_code: int = 502) -> None:
        super().__init__(message, status_code=status_code, code="settlement-error")


class SettlementTimeout(SettlementError):
    """The settlement API did not answer within the configured timeout."""

    def __init__(self, message: str = "settlement request timed out") -> None:
        super().__init__(message, status_code=504)
        self.code = "settlement-timeout"
