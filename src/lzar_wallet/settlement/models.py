"""Settlement API data models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any


class OperationKind(enum.StrEnum):
    """Ledger-mutating operations accepted by the settlement API."""

    TRANSFER = "transfer"
    MINT = "mint"
    REDEEM = "redeem"
    CHARGE = "charge"

    @property
    def path(self) -> str:
        """Endpoint path for this operation."""
        return "/charges" if self is OperationKind.CHARGE else f"/{self.value}"


@dataclass(frozen=True)
class SubmitResult:
    """Outcome of an accepted submission.

    Attributes:
        external_id: Provider-side id used to correlate webhook events.
        raw: Decoded JSON response body.
    """

    external_id: str
    raw: dict[str, Any] = field(default_factory=dict)
    accepted: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubmitResult:
        """Create a result from the provider's JSON response."""
        external_id = data.get("id") or data.get("transaction_id") or data.get("transactionId")
        return cls(external_id=str(external_id) if external_id else "", raw=data)


@dataclass(frozen=True)
class ProviderBalance:
    """Balance reported by the settlement provider for one account."""

    account_id: str
    balance: Decimal
    currency: str

    @classmethod
    def from_dict(cls, account_id: str, data: dict[str, Any], currency: str) -> ProviderBalance:
        return cls(
            account_id=account_id,
            balance=Decimal(str(data.get("balance", "0"))),
            currency=data.get("currency", currency),
        )
