"""Pre-defined wallet error instances."""

from __future__ import annotations

from lzar_wallet.errors.wallet_errors import WalletError

# -- Authentication --------------------------------------------------------

ErrUnauthorized = WalletError("unauthorized", status_code=401, code="unauthorized")
ErrAdminRequired = WalletError("admin authentication required", status_code=403, code="admin-required")
ErrInvalidSignature = WalletError(
    "invalid webhook signature", status_code=401, code="invalid-signature"
)

# -- Validation ------------------------------------------------------------

ErrInvalidAmount = WalletError("invalid amount", status_code=400, code="invalid-amount")
ErrRecipientRequired = WalletError("recipient required", status_code=400, code="recipient-required")
ErrSelfTransfer = WalletError(
    "cannot transfer to your own wallet", status_code=400, code="self-transfer"
)
ErrInvalidEvent = WalletError("invalid webhook event", status_code=400, code="invalid-event")

# -- Business rules --------------------------------------------------------

ErrInsufficientBalance = WalletError(
    "insufficient balance", status_code=400, code="insufficient-balance"
)

# -- Not Found -------------------------------------------------------------

ErrWalletNotFound = WalletError("wallet not found", status_code=404, code="wallet-not-found")
ErrRecipientNotFound = WalletError(
    "recipient not found", status_code=404, code="recipient-not-found"
)
ErrTransactionNotFound = WalletError(
    "transaction not found", status_code=404, code="transaction-not-found"
)
ErrChargeNotFound = WalletError("charge not found", status_code=404, code="charge-not-found")

# -- Conflicts -------------------------------------------------------------

ErrAccountExists = WalletError("account already exists", status_code=409, code="account-exists")

# -- Settlement / internal -------------------------------------------------

ErrSettlementFailed = WalletError(
    "settlement processing failed", status_code=500, code="settlement-failed"
)
ErrLedgerInconsistent = WalletError(
    "settlement accepted but ledger could not be updated",
    status_code=500,
    code="ledger-inconsistent",
)
