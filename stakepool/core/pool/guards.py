"""Guard functions for the stake pool.

One pure function per action. Each returns ``None`` when the action is allowed
in the given PRE-state, otherwise the ``ErrorCode`` of the first failed
precondition. Check order is part of the contract: it decides which error a
caller sees when several preconditions fail at once.
"""

from __future__ import annotations

from .errors import ErrorCode
from .math import checked_add_i64, deposit_transfer_amount, reward_transfer_amount
from .phase import can_topup, is_expired
from .types import ActionParams, Pool, Ticket


def _ticket_owner_error(ticket: Ticket | None, params: ActionParams) -> ErrorCode | None:
    if ticket is None:
        return ErrorCode.TICKET_NOT_FOUND
    if ticket.staker != params.caller or ticket.pool != params.pool_id:
        return ErrorCode.UNAUTHORIZED
    return None


def guard_initialize(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> ErrorCode | None:
    if pool is not None:
        # Re-initializing a record is never a state transition of this machine.
        return ErrorCode.INVALID_CONFIGURATION
    if params.topup_duration < 0 or params.lockup_duration < 0:
        return ErrorCode.INVALID_CONFIGURATION
    if params.topup_duration > params.lockup_duration:
        return ErrorCode.INVALID_CONFIGURATION
    # genesis + lockup_duration must stay representable for the phase gate.
    checked_add_i64(params.now, params.lockup_duration)
    return None


def guard_deposit(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> ErrorCode | None:
    if pool is None:
        return ErrorCode.POOL_NOT_FOUND
    if ticket is not None:
        if ticket.staker != params.caller or ticket.pool != params.pool_id:
            return ErrorCode.UNAUTHORIZED
        if ticket.authority_bump != params.bump:
            return ErrorCode.INVALID_BUMP
    if params.source_balance < params.amount:
        return ErrorCode.INSUFFICIENT_FUNDS
    if not can_topup(pool.genesis, pool.topup_duration, params.now):
        return ErrorCode.POOL_LOCKED
    if deposit_transfer_amount(params.amount, pool.stake_target_amount, pool.stake_acquired_amount) == 0:
        return ErrorCode.POOL_FULL
    return None


def guard_withdraw(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> ErrorCode | None:
    if pool is None:
        return ErrorCode.POOL_NOT_FOUND
    owner_err = _ticket_owner_error(ticket, params)
    if owner_err is not None:
        return owner_err
    if not can_topup(pool.genesis, pool.topup_duration, params.now):
        return ErrorCode.POOL_LOCKED
    return None


def guard_claim(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> ErrorCode | None:
    if pool is None:
        return ErrorCode.POOL_NOT_FOUND
    owner_err = _ticket_owner_error(ticket, params)
    if owner_err is not None:
        return owner_err
    if not is_expired(pool.genesis, pool.lockup_duration, params.now):
        return ErrorCode.POOL_NOT_EXPIRED
    return None


def guard_fund_reward(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> ErrorCode | None:
    if pool is None:
        return ErrorCode.POOL_NOT_FOUND
    transfer = reward_transfer_amount(
        params.amount, pool.reward_amount, pool.deposited_reward_amount, params.source_balance,
    )
    if transfer <= 0:
        return ErrorCode.NOT_ENOUGH_REWARDS
    if is_expired(pool.genesis, pool.lockup_duration, params.now):
        return ErrorCode.POOL_EXPIRED
    return None


def post_guard_fund_reward(pool: Pool) -> ErrorCode | None:
    """Re-check after the update, against races between clamp and commit."""
    if pool.deposited_reward_amount > pool.reward_amount:
        return ErrorCode.POOL_REWARDS_FULL
    return None
