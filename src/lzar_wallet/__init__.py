"""lzar-wallet: settlement and reconciliation service for the LZAR stablecoin wallet."""

__version__ = "0.1.0"
