"""
Imperative shell: collaborators, transfer guard and the public engine
"""

from .authority import PoolAuthority, derive_pool_authority, derive_ticket_address
from .clock import Clock, ManualClock, SystemClock
from .config import EngineConfig, engine_config_from_env, load_engine_config, validate_engine_config
from .pool_engine import ClaimRecord, OperationReceipt, StakePoolEngine, claim_key, pool_key, ticket_key
from .queries import PoolView, list_pools, owned_tickets, pool_tickets
from .structured_logging import configure_logging, log_event
from .transfer import (
    InsufficientBalanceError,
    LedgerTransfer,
    TransferCollaborator,
    TransferError,
    TransferGuard,
    UnauthorizedTransferError,
    UnknownAccountError,
)

__all__ = [
    "PoolAuthority",
    "derive_pool_authority",
    "derive_ticket_address",
    "Clock",
    "ManualClock",
    "SystemClock",
    "EngineConfig",
    "engine_config_from_env",
    "load_engine_config",
    "validate_engine_config",
    "ClaimRecord",
    "OperationReceipt",
    "StakePoolEngine",
    "claim_key",
    "pool_key",
    "ticket_key",
    "PoolView",
    "list_pools",
    "owned_tickets",
    "pool_tickets",
    "configure_logging",
    "log_event",
    "InsufficientBalanceError",
    "LedgerTransfer",
    "TransferCollaborator",
    "TransferError",
    "TransferGuard",
    "UnauthorizedTransferError",
    "UnknownAccountError",
]
