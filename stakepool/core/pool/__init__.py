"""`pool`: pure-Python state machine of a fixed-capacity, time-phased staking pool.

- deterministic, integer-only transitions,
- immutable records (frozen dataclasses),
- fail-closed guards and invariant checks,
- no I/O: transfers are described by the returned ``Effect`` and executed by
  the imperative shell in ``stakepool.integration``.

Public API:
- `step(pool, ticket, params) -> StepResult`
- `step_or_raise(pool, ticket, params) -> StepResult` (raises on rejection)
- `phase_at(...)`, `payout_amount(...)` for read-side callers
"""

from .engine import step, step_or_raise
from .errors import ErrorCode, PoolInvariantError, StakePoolError
from .phase import Phase, can_topup, is_expired, phase_at
from .reward import payout_amount, reward_share
from .state import (
    new_pool,
    pool_from_dict,
    pool_to_dict,
    ticket_from_dict,
    ticket_to_dict,
)
from .types import (
    Action,
    ActionParams,
    Effect,
    Event,
    Pool,
    StepResult,
    Ticket,
    TransferDirection,
)

__all__ = [
    "step",
    "step_or_raise",
    "ErrorCode",
    "PoolInvariantError",
    "StakePoolError",
    "Phase",
    "can_topup",
    "is_expired",
    "phase_at",
    "payout_amount",
    "reward_share",
    "new_pool",
    "pool_from_dict",
    "pool_to_dict",
    "ticket_from_dict",
    "ticket_to_dict",
    "Action",
    "ActionParams",
    "Effect",
    "Event",
    "Pool",
    "StepResult",
    "Ticket",
    "TransferDirection",
]
