"""Phase gate.

Phases are derived from the pool timestamps and the current time, never
stored:

- TOPUP:   ``now <  genesis + topup_duration``
- LOCKED:  ``genesis + topup_duration <= now <= genesis + lockup_duration``
- EXPIRED: ``now >  genesis + lockup_duration``

The LOCKED window is a quiet period: no stake movement and no claims, reward
funding only.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class Phase(Enum):
    TOPUP = "topup"
    LOCKED = "locked"
    EXPIRED = "expired"


def topup_end(genesis: int, topup_duration: int) -> int:
    return genesis + topup_duration


def lockup_end(genesis: int, lockup_duration: int) -> int:
    return genesis + lockup_duration


def can_topup(genesis: int, topup_duration: int, now: int) -> bool:
    """True while deposits and withdrawals are allowed."""
    return now < topup_end(genesis, topup_duration)


def is_expired(genesis: int, lockup_duration: int, now: int) -> bool:
    """True once claims are allowed."""
    return now > lockup_end(genesis, lockup_duration)


def phase_at(genesis: int, topup_duration: int, lockup_duration: int, now: int) -> Phase:
    if can_topup(genesis, topup_duration, now):
        return Phase.TOPUP
    if is_expired(genesis, lockup_duration, now):
        return Phase.EXPIRED
    return Phase.LOCKED
