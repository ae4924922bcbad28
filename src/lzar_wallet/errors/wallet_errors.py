"""WalletError: base exception class for all lzar-wallet errors."""

from __future__ import annotations


class WalletError(Exception):
    """Base error for all wallet operations.

    Attributes:
        message: Human-readable error description.
        status_code: Suggested HTTP status code.
        code: Machine-readable error code string.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        code: str = "wallet-error",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code

    @property
    def is_retryable(self) -> bool:
        """Whether the caller may safely retry (system fault, no funds moved)."""
        return self.status_code >= 500 and self.code != "ledger-inconsistent"
