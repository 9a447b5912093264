"""
Core stake pool algorithms
"""

from .apy import calc_apy, current_apy, expected_apy, periods_in_year, seconds_in_year
from .pool import (
    Action,
    ActionParams,
    ErrorCode,
    Phase,
    Pool,
    PoolInvariantError,
    StakePoolError,
    StepResult,
    Ticket,
    payout_amount,
    phase_at,
    step,
    step_or_raise,
)

__all__ = [
    "calc_apy",
    "current_apy",
    "expected_apy",
    "periods_in_year",
    "seconds_in_year",
    "Action",
    "ActionParams",
    "ErrorCode",
    "Phase",
    "Pool",
    "PoolInvariantError",
    "StakePoolError",
    "StepResult",
    "Ticket",
    "payout_amount",
    "phase_at",
    "step",
    "step_or_raise",
]
