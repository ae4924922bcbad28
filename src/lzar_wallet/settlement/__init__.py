"""Settlement gateway: client for the external stablecoin API."""

from lzar_wallet.settlement.client import SettlementGateway
from lzar_wallet.settlement.models import OperationKind, ProviderBalance, SubmitResult

__all__ = ["OperationKind", "ProviderBalance", "SettlementGateway", "SubmitResult"]
