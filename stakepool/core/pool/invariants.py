"""Invariant checkers for the stake pool.

Each function returns True when the invariant holds, and ``check_all()``
returns the list of violated invariant IDs (empty = all pass).

Pool and ticket invariants are per-record. The cross-ticket conservation law
needs every open ticket of a pool and is checked separately by
``check_conservation()``.
"""

from __future__ import annotations

from typing import Callable, Iterable

from .math import is_i64, is_u8, is_u64
from .types import Pool, Ticket


def inv_pool_fields_in_domain(p: Pool) -> bool:
    amounts = (
        p.stake_acquired_amount,
        p.stake_target_amount,
        p.reward_amount,
        p.deposited_reward_amount,
    )
    times = (p.genesis, p.topup_duration, p.lockup_duration)
    return all(is_u64(a) for a in amounts) and all(is_i64(t) for t in times) and is_u8(p.authority_bump)


def inv_topup_not_after_lockup(p: Pool) -> bool:
    return 0 <= p.topup_duration <= p.lockup_duration


def inv_stake_within_target(p: Pool) -> bool:
    return 0 <= p.stake_acquired_amount <= p.stake_target_amount


def inv_rewards_within_budget(p: Pool) -> bool:
    return 0 <= p.deposited_reward_amount <= p.reward_amount


def inv_ticket_fields_in_domain(p: Pool, t: Ticket) -> bool:
    return is_u64(t.staked_amount) and is_u8(t.authority_bump)


def inv_ticket_within_pool(p: Pool, t: Ticket) -> bool:
    return 0 <= t.staked_amount <= p.stake_acquired_amount


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

POOL_INVARIANTS: dict[str, Callable[[Pool], bool]] = {
    "inv_pool_fields_in_domain": inv_pool_fields_in_domain,
    "inv_topup_not_after_lockup": inv_topup_not_after_lockup,
    "inv_stake_within_target": inv_stake_within_target,
    "inv_rewards_within_budget": inv_rewards_within_budget,
}

TICKET_INVARIANTS: dict[str, Callable[[Pool, Ticket], bool]] = {
    "inv_ticket_fields_in_domain": inv_ticket_fields_in_domain,
    "inv_ticket_within_pool": inv_ticket_within_pool,
}


def check_all(pool: Pool, ticket: Ticket | None = None) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    violations = [inv_id for inv_id, check_fn in POOL_INVARIANTS.items() if not check_fn(pool)]
    if ticket is not None:
        violations.extend(
            inv_id for inv_id, check_fn in TICKET_INVARIANTS.items() if not check_fn(pool, ticket)
        )
    return violations


def check_conservation(pool: Pool, open_tickets: Iterable[Ticket], claimed_principal: int = 0) -> bool:
    """``sum(open stakes) + claimed principal == stake_acquired_amount``.

    Before any claim ``claimed_principal`` is 0 and this is the plain ticket-sum
    law. Claims close tickets without touching the pool counter, so their
    principal is carried on the other side of the equation.
    """
    return sum(t.staked_amount for t in open_tickets) + claimed_principal == pool.stake_acquired_amount
