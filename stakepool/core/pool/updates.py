"""State transition functions for the stake pool.

One pure function per action. Each returns the post-state ``(pool, ticket)``
with the action's updates applied.

Semantics:
- updates evaluate against the PRE-state,
- counters change only through checked u64 arithmetic,
- we implement updates via ``dataclasses.replace()`` on frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import replace

from .math import (
    checked_add_u64,
    checked_sub_u64,
    deposit_transfer_amount,
    reward_transfer_amount,
    withdraw_transfer_amount,
)
from .state import new_pool
from .types import ActionParams, Pool, Ticket


def apply_initialize(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> tuple[Pool, None]:
    return (
        new_pool(
            admin=params.caller,
            authority_bump=params.bump,
            genesis=params.now,
            topup_duration=params.topup_duration,
            lockup_duration=params.lockup_duration,
            target_amount=params.target_amount,
            reward_amount=params.reward_amount,
            stake_asset_id=params.stake_asset_id,
            stake_vault_id=params.stake_vault_id,
        ),
        None,
    )


def apply_deposit(pool: Pool, ticket: Ticket | None, params: ActionParams) -> tuple[Pool, Ticket]:
    transfer = deposit_transfer_amount(params.amount, pool.stake_target_amount, pool.stake_acquired_amount)
    if ticket is None:
        ticket = Ticket(
            staker=params.caller,
            pool=params.pool_id,
            staked_amount=0,
            authority_bump=params.bump,
        )
    return (
        replace(pool, stake_acquired_amount=checked_add_u64(pool.stake_acquired_amount, transfer)),
        replace(ticket, staked_amount=checked_add_u64(ticket.staked_amount, transfer)),
    )


def apply_withdraw(pool: Pool, ticket: Ticket, params: ActionParams) -> tuple[Pool, Ticket]:
    transfer = withdraw_transfer_amount(params.amount, ticket.staked_amount)
    return (
        replace(pool, stake_acquired_amount=checked_sub_u64(pool.stake_acquired_amount, transfer)),
        replace(ticket, staked_amount=checked_sub_u64(ticket.staked_amount, transfer)),
    )


def apply_claim(pool: Pool, ticket: Ticket, params: ActionParams) -> tuple[Pool, Ticket]:
    # stake_acquired_amount stays put: it is the denominator for every other claim.
    return pool, ticket


def apply_fund_reward(pool: Pool, ticket: Ticket | None, params: ActionParams) -> tuple[Pool, Ticket | None]:
    transfer = reward_transfer_amount(
        params.amount, pool.reward_amount, pool.deposited_reward_amount, params.source_balance,
    )
    return (
        replace(pool, deposited_reward_amount=checked_add_u64(pool.deposited_reward_amount, transfer)),
        ticket,
    )
