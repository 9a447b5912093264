"""Data types for the stake pool state machine.

All types are frozen dataclasses (immutable). Record field names match the
persisted ``Pool`` / ``Ticket`` layouts.

Units/conventions:
- amounts are u64 base units of the staked asset,
- ``genesis`` is a unix timestamp in seconds (i64),
- durations are seconds measured from ``genesis``,
- bumps are u8 derivation parameters (see ``integration.authority``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from .errors import ErrorCode
from .phase import Phase


@unique
class Action(Enum):
    """One member per public operation."""
    INITIALIZE = "initialize"
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    CLAIM = "claim"
    FUND_REWARD = "fund_reward"


@unique
class Event(Enum):
    POOL_INITIALIZED = "PoolInitialized"
    STAKE_DEPOSITED = "StakeDeposited"
    STAKE_WITHDRAWN = "StakeWithdrawn"
    REWARD_CLAIMED = "RewardClaimed"
    REWARD_FUNDED = "RewardFunded"


@unique
class TransferDirection(Enum):
    NONE = "none"
    INTO_VAULT = "into_vault"
    OUT_OF_VAULT = "out_of_vault"


@dataclass(frozen=True)
class Pool:
    """Durable record of one staking campaign."""

    admin: str
    authority_bump: int

    genesis: int
    topup_duration: int
    lockup_duration: int

    stake_acquired_amount: int
    stake_target_amount: int
    reward_amount: int
    deposited_reward_amount: int

    stake_asset_id: str
    stake_vault_id: str


@dataclass(frozen=True)
class Ticket:
    """A staker's position within one pool."""

    staker: str
    pool: str
    staked_amount: int
    authority_bump: int


@dataclass(frozen=True)
class ActionParams:
    """Parameters for an action. Unused fields default to 0/""."""

    action: Action
    now: int = 0
    caller: str = ""                # admin for initialize, acting identity otherwise
    pool_id: str = ""               # all but initialize
    amount: int = 0                 # deposit / withdraw / fund_reward
    bump: int = 0                   # initialize (pool authority) / deposit (ticket)
    source_balance: int = 0         # deposit / fund_reward

    # initialize
    topup_duration: int = 0
    lockup_duration: int = 0
    target_amount: int = 0
    reward_amount: int = 0
    stake_asset_id: str = ""
    stake_vault_id: str = ""


@dataclass(frozen=True)
class Effect:
    """What the shell must do after a successful step, plus post-state observables."""

    event: Event
    phase: Phase
    transfer_amount: int = 0
    direction: TransferDirection = TransferDirection.NONE
    close_ticket: bool = False
    reward_share: int = 0
    stake_acquired_after: int = 0
    deposited_reward_after: int = 0
    staked_after: int = 0


@dataclass(frozen=True)
class StepResult:
    """Result of a single engine step."""

    accepted: bool
    pool: Pool | None = None
    ticket: Ticket | None = None
    effect: Effect | None = None
    rejection: ErrorCode | None = None
    violations: tuple[str, ...] = ()
