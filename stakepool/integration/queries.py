"""
Read-side queries over the record store.

Nothing here mutates state. ``PoolView`` wraps a stored ``Pool`` with the
dashboard figures a client displays (dates, countdowns, totals, APY).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..core.apy import current_apy, expected_apy
from ..core.pool import Phase, Pool, Ticket, phase_at
from ..core.pool.phase import lockup_end, topup_end
from ..state.balances import Identity
from ..state.records import RecordStore
from .pool_engine import POOL_KEY_PREFIX, TICKET_KEY_PREFIX


def _utc(timestamp: int) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


@dataclass(frozen=True)
class PoolView:
    pool_id: str
    pool: Pool

    @property
    def start_date(self) -> datetime:
        return _utc(self.pool.genesis)

    @property
    def end_date(self) -> datetime:
        return self.start_date + timedelta(seconds=self.pool.lockup_duration)

    @property
    def topup_end_date(self) -> datetime:
        return self.start_date + timedelta(seconds=self.pool.topup_duration)

    def phase(self, now: int) -> Phase:
        p = self.pool
        return phase_at(p.genesis, p.topup_duration, p.lockup_duration, now)

    def time_to_deposit(self, now: int) -> int:
        """Seconds until topup closes (negative once it has)."""
        return topup_end(self.pool.genesis, self.pool.topup_duration) - now

    def time_until_withdrawal(self, now: int) -> int:
        """Seconds until the lockup ends (negative once it has)."""
        return lockup_end(self.pool.genesis, self.pool.lockup_duration) - now

    @property
    def total_pool_deposits(self) -> int:
        return self.pool.stake_acquired_amount

    @property
    def max_pool_size(self) -> int:
        return self.pool.stake_target_amount

    @property
    def total_rewards(self) -> int:
        return self.pool.reward_amount

    @property
    def rewards_remaining(self) -> int:
        # Rewards currently held for payout, i.e. funded so far.
        return self.pool.deposited_reward_amount

    def expected_apy(self, year: Optional[int] = None) -> float:
        return expected_apy(self.pool, year if year is not None else self.start_date.year)

    def apy(self, year: Optional[int] = None) -> float:
        return current_apy(self.pool, year if year is not None else self.start_date.year)


def list_pools(store: RecordStore) -> List[PoolView]:
    return [PoolView(pool_id=key[len(POOL_KEY_PREFIX):], pool=pool) for key, pool in store.items(POOL_KEY_PREFIX)]


def pool_tickets(store: RecordStore, pool_id: str) -> List[Ticket]:
    return [ticket for _, ticket in store.items(f"{TICKET_KEY_PREFIX}{pool_id}/")]


def owned_tickets(store: RecordStore, owner: Identity) -> List[Ticket]:
    """Open tickets held by ``owner`` across all pools, ordered by pool id."""
    return sorted(
        (ticket for _, ticket in store.items(TICKET_KEY_PREFIX) if ticket.staker == owner),
        key=lambda t: t.pool,
    )
