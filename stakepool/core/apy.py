"""
Yield analytics for pool dashboards.

Informational only: these helpers use floats and never feed back into the
state machine. A pool's lockup is treated as one compounding period, so a pool
that pays ``r`` per lockup compounds ``periods_in_year`` times a year.
"""

from __future__ import annotations

import calendar
import math

from .pool.types import Pool

SECONDS_PER_DAY = 86_400


def seconds_in_year(year: int) -> int:
    days = 366 if calendar.isleap(year) else 365
    return days * SECONDS_PER_DAY


def periods_in_year(lockup_duration: int, year: int) -> int:
    """Number of back-to-back lockups that fit in ``year`` (half-up rounding, at least 1)."""
    if lockup_duration <= 0:
        raise ValueError(f"lockup_duration must be positive: {lockup_duration}")
    periods = math.floor(seconds_in_year(year) / lockup_duration + 0.5)
    return max(periods, 1)


def calc_apy(annual_rate: float, periods: int) -> float:
    """Compound ``annual_rate`` over ``periods`` equal periods."""
    if periods <= 0:
        raise ValueError(f"periods must be positive: {periods}")
    return (1 + annual_rate / periods) ** periods - 1


def _apy_for_rate(rate: float, lockup_duration: int, year: int) -> float:
    periods = periods_in_year(lockup_duration, year)
    return calc_apy(rate * periods, periods)


def expected_apy(pool: Pool, year: int) -> float:
    """APY promised at creation: full reward budget over a full pool."""
    if pool.stake_target_amount <= 0:
        raise ValueError("stake_target_amount must be positive")
    rate = pool.reward_amount / pool.stake_target_amount
    return _apy_for_rate(rate, pool.lockup_duration, year)


def current_apy(pool: Pool, year: int) -> float:
    """APY implied by rewards funded so far over stake acquired so far (0.0 for an empty pool)."""
    if pool.stake_acquired_amount == 0:
        return 0.0
    rate = pool.deposited_reward_amount / pool.stake_acquired_amount
    return _apy_for_rate(rate, pool.lockup_duration, year)
