"""Engine data models (SQLAlchemy ORM).

Import :data:`ALL_MODELS` for migration and table creation.
"""

from lzar_wallet.engine.models.account import Account
from lzar_wallet.engine.models.base import Base, MetadataMixin, TimestampMixin
from lzar_wallet.engine.models.charge import Charge
from lzar_wallet.engine.models.transaction import TransactionRecord

ALL_MODELS: list[type[Base]] = [
    Account,
    TransactionRecord,
    Charge,
]

__all__ = [
    "ALL_MODELS",
    "Account",
    "Base",
    "Charge",
    "MetadataMixin",
    "TimestampMixin",
    "TransactionRecord",
]
