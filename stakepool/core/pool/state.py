"""Record construction and serialization.

Round-trip property (tested): ``pool_from_dict(pool_to_dict(p)) == p`` and the
same for tickets.
"""

from __future__ import annotations

from typing import Any, Mapping

from .types import Pool, Ticket

# Auto-derived from the dataclass field definitions (single source of truth).
POOL_FIELD_NAMES: tuple[str, ...] = tuple(Pool.__dataclass_fields__)
TICKET_FIELD_NAMES: tuple[str, ...] = tuple(Ticket.__dataclass_fields__)

_POOL_STR_FIELDS = frozenset({"admin", "stake_asset_id", "stake_vault_id"})
_TICKET_STR_FIELDS = frozenset({"staker", "pool"})


def new_pool(
    *,
    admin: str,
    authority_bump: int,
    genesis: int,
    topup_duration: int,
    lockup_duration: int,
    target_amount: int,
    reward_amount: int,
    stake_asset_id: str,
    stake_vault_id: str,
) -> Pool:
    """Freshly created pool: accrued counters start at zero."""
    return Pool(
        admin=admin,
        authority_bump=authority_bump,
        genesis=genesis,
        topup_duration=topup_duration,
        lockup_duration=lockup_duration,
        stake_acquired_amount=0,
        stake_target_amount=target_amount,
        reward_amount=reward_amount,
        deposited_reward_amount=0,
        stake_asset_id=stake_asset_id,
        stake_vault_id=stake_vault_id,
    )


def pool_to_dict(pool: Pool) -> dict[str, int | str]:
    return {name: getattr(pool, name) for name in POOL_FIELD_NAMES}


def ticket_to_dict(ticket: Ticket) -> dict[str, int | str]:
    return {name: getattr(ticket, name) for name in TICKET_FIELD_NAMES}


def _coerce_fields(
    d: Mapping[str, Any],
    names: tuple[str, ...],
    str_fields: frozenset[str],
) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for name in names:
        val = d[name]
        if name in str_fields:
            if not isinstance(val, str):
                raise TypeError(f"field {name!r} must be str, got {type(val).__name__}")
            kwargs[name] = val
        elif isinstance(val, int) and not isinstance(val, bool):
            kwargs[name] = int(val)
        else:
            raise TypeError(f"field {name!r} must be int, got {type(val).__name__}")
    return kwargs


def pool_from_dict(d: Mapping[str, Any]) -> Pool:
    """Deserialize a dict to a Pool. Raises KeyError on missing fields."""
    return Pool(**_coerce_fields(d, POOL_FIELD_NAMES, _POOL_STR_FIELDS))


def ticket_from_dict(d: Mapping[str, Any]) -> Ticket:
    """Deserialize a dict to a Ticket. Raises KeyError on missing fields."""
    return Ticket(**_coerce_fields(d, TICKET_FIELD_NAMES, _TICKET_STR_FIELDS))
