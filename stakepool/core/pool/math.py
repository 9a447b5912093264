"""Pure integer arithmetic for the stake pool.

Every function is stateless and operates on plain Python ints. Python ints do
not wrap, so the u64/i64 widths of the persisted records are enforced
explicitly: counter updates go through ``checked_add_u64`` /
``checked_sub_u64`` and fail with ``IntegerOverflow`` instead of wrapping.
"""

from __future__ import annotations

from .errors import ErrorCode, StakePoolError

# Domain constants (record field widths)
U8_MAX: int = 0xFF
U64_MAX: int = 0xFFFF_FFFF_FFFF_FFFF
I64_MIN: int = -(1 << 63)
I64_MAX: int = (1 << 63) - 1


# -- Domain predicates -------------------------------------------------------

def is_int(x: object) -> bool:
    """True for real ints (bool is rejected)."""
    return isinstance(x, int) and not isinstance(x, bool)


def is_u8(x: object) -> bool:
    return is_int(x) and 0 <= x <= U8_MAX  # type: ignore[operator]


def is_u64(x: object) -> bool:
    return is_int(x) and 0 <= x <= U64_MAX  # type: ignore[operator]


def is_i64(x: object) -> bool:
    return is_int(x) and I64_MIN <= x <= I64_MAX  # type: ignore[operator]


# -- Checked arithmetic ------------------------------------------------------

def checked_add_u64(a: int, b: int) -> int:
    """``a + b``; raises ``IntegerOverflow`` if the sum leaves u64."""
    total = a + b
    if not (0 <= total <= U64_MAX):
        raise StakePoolError(ErrorCode.INTEGER_OVERFLOW, f"u64 overflow: {a} + {b}")
    return total


def checked_sub_u64(a: int, b: int) -> int:
    """``a - b``; raises ``IntegerOverflow`` on underflow."""
    diff = a - b
    if not (0 <= diff <= U64_MAX):
        raise StakePoolError(ErrorCode.INTEGER_OVERFLOW, f"u64 underflow: {a} - {b}")
    return diff


def checked_add_i64(a: int, b: int) -> int:
    total = a + b
    if not (I64_MIN <= total <= I64_MAX):
        raise StakePoolError(ErrorCode.INTEGER_OVERFLOW, f"i64 overflow: {a} + {b}")
    return total


# -- Clamps ------------------------------------------------------------------

def remaining_capacity(stake_target_amount: int, stake_acquired_amount: int) -> int:
    """Principal the pool can still accept."""
    return checked_sub_u64(stake_target_amount, stake_acquired_amount)


def remaining_reward(reward_amount: int, deposited_reward_amount: int) -> int:
    """Reward budget not funded yet."""
    return checked_sub_u64(reward_amount, deposited_reward_amount)


def deposit_transfer_amount(requested: int, stake_target_amount: int, stake_acquired_amount: int) -> int:
    """``min(requested, target - acquired)``."""
    return min(requested, remaining_capacity(stake_target_amount, stake_acquired_amount))


def withdraw_transfer_amount(requested: int, staked_amount: int) -> int:
    """``min(requested, staked)``."""
    return min(requested, staked_amount)


def reward_transfer_amount(
    requested: int,
    reward_amount: int,
    deposited_reward_amount: int,
    source_balance: int,
) -> int:
    """``min(requested, reward - deposited, source_balance)``."""
    return min(requested, remaining_reward(reward_amount, deposited_reward_amount), source_balance)
