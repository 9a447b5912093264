"""Proportional reward computation.

``payout = staked + floor(staked / acquired * reward)``

The share ``staked / acquired`` is carried as an exact integer ratio and
floored once, after scaling by the reward budget, so no fractional bits are
lost before the final truncation. Python ints give the unbounded intermediate
(``staked * reward`` needs up to 128 bits); the result is then checked against
the u64 output width. Same inputs, same output, on every platform.
"""

from __future__ import annotations

from .errors import ErrorCode, PoolInvariantError, StakePoolError
from .math import U64_MAX, checked_add_u64, is_u64


def reward_share(staked_amount: int, stake_acquired_amount: int, reward_amount: int) -> int:
    """``floor(staked * reward / acquired)``.

    A ticket with positive stake cannot exist against a pool that acquired
    nothing, so a zero denominator is an invariant violation.
    """
    if stake_acquired_amount <= 0:
        raise PoolInvariantError(["inv_claim_denominator_positive"])
    if staked_amount > stake_acquired_amount:
        raise PoolInvariantError(["inv_ticket_within_pool"])
    return (staked_amount * reward_amount) // stake_acquired_amount


def payout_amount(staked_amount: int, stake_acquired_amount: int, reward_amount: int) -> int:
    """Principal plus reward share, as a u64.

    Raises:
        StakePoolError: ``IntegerOverflow`` if an input or the payout leaves u64.
        PoolInvariantError: zero denominator or stake above the pool total.
    """
    for name, value in (
        ("staked_amount", staked_amount),
        ("stake_acquired_amount", stake_acquired_amount),
        ("reward_amount", reward_amount),
    ):
        if not is_u64(value):
            raise StakePoolError(ErrorCode.INTEGER_OVERFLOW, f"{name} outside u64: {value}")
    share = reward_share(staked_amount, stake_acquired_amount, reward_amount)
    if share > U64_MAX:
        raise StakePoolError(ErrorCode.INTEGER_OVERFLOW, f"reward share outside u64: {share}")
    return checked_add_u64(staked_amount, share)
