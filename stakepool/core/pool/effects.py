"""Effect functions for the stake pool.

One pure function per action. Each computes the ``Effect`` the imperative shell
executes: the exact transfer to guard, its direction, and whether the ticket
record must be reclaimed. Transfer amounts are the same clamps the updates use,
evaluated on the PRE-state; observables (``*_after``) come from the POST-state.
"""

from __future__ import annotations

from typing import Any

from .math import deposit_transfer_amount, reward_transfer_amount, withdraw_transfer_amount
from .phase import phase_at
from .reward import payout_amount, reward_share
from .types import ActionParams, Effect, Event, Pool, Ticket, TransferDirection


def _observables(pool: Pool, ticket: Ticket | None, params: ActionParams) -> dict[str, Any]:
    return dict(
        phase=phase_at(pool.genesis, pool.topup_duration, pool.lockup_duration, params.now),
        stake_acquired_after=pool.stake_acquired_amount,
        deposited_reward_after=pool.deposited_reward_amount,
        staked_after=ticket.staked_amount if ticket is not None else 0,
    )


def effect_initialize(
    pre_pool: Pool | None, pre_ticket: Ticket | None,
    pool: Pool, ticket: Ticket | None, params: ActionParams,
) -> Effect:
    return Effect(event=Event.POOL_INITIALIZED, **_observables(pool, ticket, params))


def effect_deposit(
    pre_pool: Pool, pre_ticket: Ticket | None,
    pool: Pool, ticket: Ticket, params: ActionParams,
) -> Effect:
    transfer = deposit_transfer_amount(
        params.amount, pre_pool.stake_target_amount, pre_pool.stake_acquired_amount,
    )
    return Effect(
        event=Event.STAKE_DEPOSITED,
        transfer_amount=transfer,
        direction=TransferDirection.INTO_VAULT,
        **_observables(pool, ticket, params),
    )


def effect_withdraw(
    pre_pool: Pool, pre_ticket: Ticket,
    pool: Pool, ticket: Ticket, params: ActionParams,
) -> Effect:
    return Effect(
        event=Event.STAKE_WITHDRAWN,
        transfer_amount=withdraw_transfer_amount(params.amount, pre_ticket.staked_amount),
        direction=TransferDirection.OUT_OF_VAULT,
        close_ticket=ticket.staked_amount == 0,
        **_observables(pool, ticket, params),
    )


def effect_claim(
    pre_pool: Pool, pre_ticket: Ticket,
    pool: Pool, ticket: Ticket, params: ActionParams,
) -> Effect:
    staked = pre_ticket.staked_amount
    return Effect(
        event=Event.REWARD_CLAIMED,
        transfer_amount=payout_amount(staked, pre_pool.stake_acquired_amount, pre_pool.reward_amount),
        direction=TransferDirection.OUT_OF_VAULT,
        close_ticket=True,
        reward_share=reward_share(staked, pre_pool.stake_acquired_amount, pre_pool.reward_amount),
        **_observables(pool, ticket, params),
    )


def effect_fund_reward(
    pre_pool: Pool, pre_ticket: Ticket | None,
    pool: Pool, ticket: Ticket | None, params: ActionParams,
) -> Effect:
    transfer = reward_transfer_amount(
        params.amount, pre_pool.reward_amount, pre_pool.deposited_reward_amount, params.source_balance,
    )
    return Effect(
        event=Event.REWARD_FUNDED,
        transfer_amount=transfer,
        direction=TransferDirection.INTO_VAULT,
        **_observables(pool, ticket, params),
    )
