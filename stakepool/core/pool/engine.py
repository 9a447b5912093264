"""Dispatch-table engine for the stake pool.

``step(pool, ticket, params)`` is the single entry point. It:

1. Validates parameter domains (u64 amounts, i64 times, u8 bumps).
2. Dispatches to the correct guard / update / effect functions.
3. Runs the post-update re-check (reward funding only).
4. Checks all invariants on the post-state.
5. Returns a ``StepResult`` (accepted, or rejected with an ``ErrorCode``).

The engine is pure: it never moves funds. The shell executes
``StepResult.effect`` and commits ``StepResult.pool`` / ``StepResult.ticket``
only after the transfer went through.
"""

from __future__ import annotations

from typing import Any, Callable

from .effects import (
    effect_claim,
    effect_deposit,
    effect_fund_reward,
    effect_initialize,
    effect_withdraw,
)
from .errors import ErrorCode, PoolInvariantError, StakePoolError
from .guards import (
    guard_claim,
    guard_deposit,
    guard_fund_reward,
    guard_initialize,
    guard_withdraw,
    post_guard_fund_reward,
)
from .invariants import check_all
from .math import is_i64, is_u8, is_u64
from .types import Action, ActionParams, Effect, Pool, StepResult, Ticket
from .updates import (
    apply_claim,
    apply_deposit,
    apply_fund_reward,
    apply_initialize,
    apply_withdraw,
)

GuardFn = Callable[[Any, Any, ActionParams], "ErrorCode | None"]
UpdateFn = Callable[[Any, Any, ActionParams], "tuple[Pool, Ticket | None]"]
EffectFn = Callable[..., Effect]

_DISPATCH: dict[Action, tuple[GuardFn, UpdateFn, EffectFn]] = {
    Action.INITIALIZE: (guard_initialize, apply_initialize, effect_initialize),
    Action.DEPOSIT: (guard_deposit, apply_deposit, effect_deposit),
    Action.WITHDRAW: (guard_withdraw, apply_withdraw, effect_withdraw),
    Action.CLAIM: (guard_claim, apply_claim, effect_claim),
    Action.FUND_REWARD: (guard_fund_reward, apply_fund_reward, effect_fund_reward),
}

_POST_GUARDS: dict[Action, Callable[[Pool], "ErrorCode | None"]] = {
    Action.FUND_REWARD: post_guard_fund_reward,
}

# -- Parameter domain bounds -------------------------------------------------

_U64_FIELDS: dict[Action, tuple[str, ...]] = {
    Action.INITIALIZE: ("target_amount", "reward_amount"),
    Action.DEPOSIT: ("amount", "source_balance"),
    Action.WITHDRAW: ("amount",),
    Action.CLAIM: (),
    Action.FUND_REWARD: ("amount", "source_balance"),
}

_I64_FIELDS: dict[Action, tuple[str, ...]] = {
    Action.INITIALIZE: ("now", "topup_duration", "lockup_duration"),
    Action.DEPOSIT: ("now",),
    Action.WITHDRAW: ("now",),
    Action.CLAIM: ("now",),
    Action.FUND_REWARD: ("now",),
}

_BUMP_ACTIONS = frozenset({Action.INITIALIZE, Action.DEPOSIT})


def _validate_params(params: ActionParams) -> ErrorCode | None:
    """Check parameter domain bounds. Returns rejection code or None."""
    for field in _U64_FIELDS[params.action]:
        if not is_u64(getattr(params, field)):
            return ErrorCode.INTEGER_OVERFLOW
    for field in _I64_FIELDS[params.action]:
        if not is_i64(getattr(params, field)):
            return ErrorCode.INTEGER_OVERFLOW
    if params.action in _BUMP_ACTIONS and not is_u8(params.bump):
        return ErrorCode.INVALID_BUMP
    return None


def step(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> StepResult:
    """Execute one action against the given pre-state.

    Returns ``StepResult`` with ``accepted=True`` on success, or
    ``accepted=False`` with a ``rejection`` code (or ``violations`` when the
    post-state breaks an invariant).
    """
    entry = _DISPATCH.get(params.action)
    if entry is None:
        raise ValueError(f"unknown action: {params.action!r}")

    domain_err = _validate_params(params)
    if domain_err is not None:
        return StepResult(accepted=False, rejection=domain_err)

    guard_fn, update_fn, effect_fn = entry

    try:
        guard_err = guard_fn(pool, ticket, params)
        if guard_err is not None:
            return StepResult(accepted=False, rejection=guard_err)

        new_pool, new_ticket = update_fn(pool, ticket, params)
        effect = effect_fn(pool, ticket, new_pool, new_ticket, params)
    except StakePoolError as exc:
        return StepResult(accepted=False, rejection=exc.code)

    post_guard = _POST_GUARDS.get(params.action)
    if post_guard is not None:
        post_err = post_guard(new_pool)
        if post_err is not None:
            return StepResult(accepted=False, rejection=post_err)

    violations = check_all(new_pool, new_ticket)
    if violations:
        return StepResult(accepted=False, violations=tuple(violations))

    return StepResult(accepted=True, pool=new_pool, ticket=new_ticket, effect=effect)


def step_or_raise(pool: Pool | None, ticket: Ticket | None, params: ActionParams) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        StakePoolError: Parameter outside its domain, or a guard failed.
        PoolInvariantError: Post-state violates one or more invariants.
    """
    result = step(pool, ticket, params)
    if result.accepted:
        return result
    if result.violations:
        raise PoolInvariantError(list(result.violations))
    assert result.rejection is not None
    raise StakePoolError(result.rejection)
