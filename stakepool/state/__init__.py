"""
Durable state for the stake pool: token accounts and pool/ticket records
"""

from .balances import TokenAccount, TokenLedger
from .records import (
    InsufficientCollateralError,
    RecordConflictError,
    RecordError,
    RecordExistsError,
    RecordNotFoundError,
    RecordStore,
    RecordWrite,
)

__all__ = [
    "TokenAccount",
    "TokenLedger",
    "InsufficientCollateralError",
    "RecordConflictError",
    "RecordError",
    "RecordExistsError",
    "RecordNotFoundError",
    "RecordStore",
    "RecordWrite",
]
