"""
Stake pool engine (imperative shell).

Every public operation follows the same sequence:

1. read the clock once,
2. load the Pool (and Ticket) records and the balances the core needs,
3. run the pure core (`stakepool.core.pool.step`) on that pre-state,
4. execute the returned transfer through ``TransferGuard``,
5. commit the post-state to the ``RecordStore`` in one compare-and-swap batch.

A rejection at steps 3-4 raises ``StakePoolError`` before anything is
committed. Records are keyed ``pool/<pool_id>``, ``ticket/<pool_id>/<staker>``
and ``claim/<pool_id>/<staker>``; a claim record is written in the same batch
that closes its ticket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.pool import (
    Action,
    ActionParams,
    ErrorCode,
    Event,
    Pool,
    PoolInvariantError,
    StakePoolError,
    StepResult,
    Ticket,
    step,
)
from ..core.pool.invariants import check_conservation
from ..core.pool.state import pool_to_dict, ticket_to_dict
from ..state.balances import AccountId, Identity
from ..state.canonical import domain_sep_bytes, encode_str, encode_uvarint, sha256_hex
from ..state.records import RecordStore, RecordWrite
from .authority import PoolAuthority, derive_pool_authority, derive_ticket_address
from .clock import Clock, SystemClock
from .config import EngineConfig, validate_engine_config
from .structured_logging import ENGINE_LOGGER, log_event
from .transfer import TransferCollaborator, TransferGuard, UnknownAccountError

POOL_KEY_PREFIX = "pool/"
TICKET_KEY_PREFIX = "ticket/"
CLAIM_KEY_PREFIX = "claim/"

_EVENT_LOG_NAMES: Dict[Event, str] = {
    Event.POOL_INITIALIZED: "pool_initialized",
    Event.STAKE_DEPOSITED: "stake_deposited",
    Event.STAKE_WITHDRAWN: "stake_withdrawn",
    Event.REWARD_CLAIMED: "reward_claimed",
    Event.REWARD_FUNDED: "reward_funded",
}


def pool_key(pool_id: str) -> str:
    return f"{POOL_KEY_PREFIX}{pool_id}"


def ticket_key(pool_id: str, staker: Identity) -> str:
    return f"{TICKET_KEY_PREFIX}{pool_id}/{staker}"


def claim_key(pool_id: str, staker: Identity) -> str:
    return f"{CLAIM_KEY_PREFIX}{pool_id}/{staker}"


@dataclass(frozen=True)
class OperationReceipt:
    """Outcome of one committed operation."""

    operation: str
    pool_id: str
    amount: int
    ticket_closed: bool = False
    pool: Optional[Pool] = None
    ticket: Optional[Ticket] = None
    ticket_address: Optional[str] = None
    reward_share: int = 0
    collateral_returned: int = 0


@dataclass(frozen=True)
class ClaimRecord:
    pool_id: str
    staker: Identity
    principal: int
    reward_share: int
    payout: int
    claimed_at: int


class StakePoolEngine:
    """
    Public stake pool operations over injected collaborators.

    A ``store`` passed in must charge ``config.ticket_collateral`` per record;
    the engine raises ``ValueError`` otherwise.
    """

    def __init__(
        self,
        *,
        transfer: TransferCollaborator,
        store: Optional[RecordStore] = None,
        clock: Optional[Clock] = None,
        config: Optional[EngineConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or EngineConfig()
        validate_engine_config(self.config)
        self.transfer = transfer
        if store is None:
            store = RecordStore(collateral_per_record=self.config.ticket_collateral)
        elif store.collateral_per_record != self.config.ticket_collateral:
            raise ValueError(
                f"store charges {store.collateral_per_record} per record but "
                f"config.ticket_collateral is {self.config.ticket_collateral}"
            )
        store.register_encoder(Pool, pool_to_dict)
        store.register_encoder(Ticket, ticket_to_dict)
        self.store = store
        self.clock = clock or SystemClock()
        self._logger = logger or logging.getLogger(ENGINE_LOGGER)
        self.guard = TransferGuard(transfer, log_events=self.config.log_events)

    # -- helpers -------------------------------------------------------------

    def _log(self, event: str, *, level: int = logging.INFO, **fields) -> None:
        if self.config.log_events:
            log_event(self._logger, event, level=level, **fields)

    def _reject(self, operation: str, pool_id: str, code: ErrorCode, reason: Optional[str] = None) -> StakePoolError:
        err = StakePoolError(code, reason)
        self._log(
            "operation_rejected",
            level=logging.WARNING,
            operation=operation,
            pool_id=pool_id,
            code=code.value,
            reason=err.reason,
        )
        return err

    def _run(self, operation: str, pool_id: str, pool, ticket, params: ActionParams) -> StepResult:
        result = step(pool, ticket, params)
        if result.accepted:
            return result
        if result.violations:
            self._log(
                "operation_rejected",
                level=logging.ERROR,
                operation=operation,
                pool_id=pool_id,
                violations=list(result.violations),
            )
            raise PoolInvariantError(list(result.violations))
        assert result.rejection is not None
        raise self._reject(operation, pool_id, result.rejection)

    def _check_amount(self, operation: str, pool_id: str, amount: int) -> None:
        if isinstance(amount, int) and not isinstance(amount, bool) and amount > self.config.max_amount:
            raise self._reject(
                operation, pool_id, ErrorCode.INTEGER_OVERFLOW,
                f"amount {amount} exceeds configured max_amount {self.config.max_amount}",
            )

    def _load_pool(self, operation: str, pool_id: str) -> Pool:
        pool = self.store.get(pool_key(pool_id))
        if pool is None:
            raise self._reject(operation, pool_id, ErrorCode.POOL_NOT_FOUND)
        return pool

    def _source_balance(self, operation: str, pool_id: str, account_id: AccountId) -> int:
        try:
            return self.transfer.balance_of(account_id)
        except UnknownAccountError as exc:
            raise self._reject(operation, pool_id, ErrorCode.TRANSFER_FAILED, f"unknown account {account_id}") from exc

    def _guarded(
        self,
        operation: str,
        pool_id: str,
        amount: int,
        source: AccountId,
        destination: AccountId,
        authority: "Identity | PoolAuthority",
    ) -> int:
        try:
            return self.guard.execute(amount, source, destination, authority)
        except StakePoolError as exc:
            raise self._reject(operation, pool_id, exc.code, exc.reason) from exc

    def _commit(self, writes: List[RecordWrite]) -> int:
        returned = self.store.commit(writes)
        return sum(returned.values())

    def pool_authority(self, pool_id: str) -> PoolAuthority:
        """Re-derive a pool's vault authority from its stored seeds."""
        pool = self._load_pool("pool_authority", pool_id)
        return derive_pool_authority(pool_id, pool.admin, pool.authority_bump)

    def next_pool_id(self, admin: Identity) -> str:
        """First unused pool id in ``admin``'s deterministic sequence."""
        seq = 0
        while True:
            candidate = sha256_hex(domain_sep_bytes("pool-id") + encode_str(admin) + encode_uvarint(seq))
            if self.store.get(pool_key(candidate)) is None:
                return candidate
            seq += 1

    # -- reads ---------------------------------------------------------------

    def get_pool(self, pool_id: str) -> Optional[Pool]:
        return self.store.get(pool_key(pool_id))

    def get_ticket(self, pool_id: str, staker: Identity) -> Optional[Ticket]:
        return self.store.get(ticket_key(pool_id, staker))

    def claims(self, pool_id: Optional[str] = None) -> List[ClaimRecord]:
        """Claim records, ordered by key (pool id, then staker)."""
        prefix = CLAIM_KEY_PREFIX if pool_id is None else f"{CLAIM_KEY_PREFIX}{pool_id}/"
        return [record for _, record in self.store.items(prefix)]

    def claimed_principal(self, pool_id: str) -> int:
        return sum(c.principal for c in self.claims(pool_id))

    def check_pool_conservation(self, pool_id: str) -> bool:
        """Open ticket stakes plus claimed principal equal the pool's acquired stake."""
        pool = self._load_pool("check_pool_conservation", pool_id)
        tickets = [t for _, t in self.store.items(f"{TICKET_KEY_PREFIX}{pool_id}/")]
        return check_conservation(pool, tickets, self.claimed_principal(pool_id))

    # -- operations ----------------------------------------------------------

    def initialize(
        self,
        *,
        admin: Identity,
        authority_bump: int,
        topup_duration: int,
        lockup_duration: int,
        target_amount: int,
        reward_amount: int,
        stake_asset_id: str,
        stake_vault_id: AccountId,
        pool_id: Optional[str] = None,
    ) -> OperationReceipt:
        """
        Create a pool whose vault is owned by the pool's derived authority.

        Raises:
            StakePoolError: InvalidBump, InvalidAuthority, InvalidConfiguration, IntegerOverflow
            RecordExistsError: ``pool_id`` is already taken
        """
        op = "initialize"
        if pool_id is None:
            pool_id = self.next_pool_id(admin)
        if not isinstance(pool_id, str) or not pool_id or "/" in pool_id:
            raise self._reject(op, str(pool_id), ErrorCode.INVALID_CONFIGURATION, f"invalid pool id {pool_id!r}")
        self._check_amount(op, pool_id, target_amount)
        self._check_amount(op, pool_id, reward_amount)

        try:
            authority = derive_pool_authority(pool_id, admin, authority_bump)
        except StakePoolError as exc:
            raise self._reject(op, pool_id, exc.code, exc.reason) from exc
        try:
            vault = self.transfer.account(stake_vault_id)
        except UnknownAccountError as exc:
            raise self._reject(op, pool_id, ErrorCode.INVALID_AUTHORITY, f"unknown vault {stake_vault_id}") from exc
        if vault.asset != stake_asset_id:
            raise self._reject(op, pool_id, ErrorCode.INVALID_AUTHORITY, "vault does not hold the stake asset")
        if vault.owner != authority.address:
            raise self._reject(op, pool_id, ErrorCode.INVALID_AUTHORITY, "vault is not owned by the pool authority")

        params = ActionParams(
            action=Action.INITIALIZE,
            now=self.clock.now(),
            caller=admin,
            pool_id=pool_id,
            bump=authority_bump,
            topup_duration=topup_duration,
            lockup_duration=lockup_duration,
            target_amount=target_amount,
            reward_amount=reward_amount,
            stake_asset_id=stake_asset_id,
            stake_vault_id=stake_vault_id,
        )
        result = self._run(op, pool_id, None, None, params)

        # Pools are never closed, so their record carries no reclaimable collateral.
        self._commit([RecordWrite(key=pool_key(pool_id), expected=None, new=result.pool, payer=admin, collateral=0)])
        self._log(
            _EVENT_LOG_NAMES[Event.POOL_INITIALIZED],
            pool_id=pool_id,
            admin=admin,
            genesis=params.now,
            topup_duration=topup_duration,
            lockup_duration=lockup_duration,
            target_amount=target_amount,
            reward_amount=reward_amount,
            authority=authority.address,
        )
        return OperationReceipt(operation=op, pool_id=pool_id, amount=0, pool=result.pool)

    def deposit(
        self,
        *,
        pool_id: str,
        staker: Identity,
        amount: int,
        ticket_bump: int,
        source_account: AccountId,
    ) -> OperationReceipt:
        op = "deposit"
        pool = self._load_pool(op, pool_id)
        self._check_amount(op, pool_id, amount)
        key = ticket_key(pool_id, staker)
        ticket = self.store.get(key)
        params = ActionParams(
            action=Action.DEPOSIT,
            now=self.clock.now(),
            caller=staker,
            pool_id=pool_id,
            amount=amount,
            bump=ticket_bump,
            source_balance=self._source_balance(op, pool_id, source_account),
        )
        result = self._run(op, pool_id, pool, ticket, params)
        assert result.effect is not None

        if ticket is None and not self.store.can_allocate(staker):
            raise self._reject(op, pool_id, ErrorCode.INSUFFICIENT_FUNDS, "staker cannot cover ticket collateral")

        moved = self._guarded(op, pool_id, result.effect.transfer_amount, source_account, pool.stake_vault_id, staker)

        ticket_write = (
            RecordWrite(key=key, expected=None, new=result.ticket, payer=staker)
            if ticket is None
            else RecordWrite(key=key, expected=ticket, new=result.ticket)
        )
        self._commit([RecordWrite(key=pool_key(pool_id), expected=pool, new=result.pool), ticket_write])

        address = derive_ticket_address(pool_id, staker, ticket_bump)
        self._log(
            _EVENT_LOG_NAMES[Event.STAKE_DEPOSITED],
            pool_id=pool_id,
            staker=staker,
            ticket=address,
            requested=amount,
            amount=moved,
            stake_acquired=result.effect.stake_acquired_after,
            staked=result.effect.staked_after,
        )
        return OperationReceipt(
            operation=op,
            pool_id=pool_id,
            amount=moved,
            pool=result.pool,
            ticket=result.ticket,
            ticket_address=address,
        )

    def withdraw(
        self,
        *,
        pool_id: str,
        staker: Identity,
        amount: int,
        target_account: AccountId,
    ) -> OperationReceipt:
        """
        Remove up to ``amount`` of stake during topup.

        A request that clamps to zero is a no-op: nothing is transferred or
        committed and the call succeeds.
        """
        op = "withdraw"
        pool = self._load_pool(op, pool_id)
        self._check_amount(op, pool_id, amount)
        key = ticket_key(pool_id, staker)
        ticket = self.store.get(key)
        params = ActionParams(
            action=Action.WITHDRAW,
            now=self.clock.now(),
            caller=staker,
            pool_id=pool_id,
            amount=amount,
        )
        result = self._run(op, pool_id, pool, ticket, params)
        assert result.effect is not None and ticket is not None
        address = derive_ticket_address(pool_id, staker, ticket.authority_bump)

        if result.effect.transfer_amount == 0:
            return OperationReceipt(
                operation=op, pool_id=pool_id, amount=0, pool=pool, ticket=ticket, ticket_address=address,
            )

        authority = derive_pool_authority(pool_id, pool.admin, pool.authority_bump)
        moved = self._guarded(op, pool_id, result.effect.transfer_amount, pool.stake_vault_id, target_account, authority)

        closed = result.effect.close_ticket
        ticket_write = (
            RecordWrite(key=key, expected=ticket, close_to=staker)
            if closed
            else RecordWrite(key=key, expected=ticket, new=result.ticket)
        )
        returned = self._commit([RecordWrite(key=pool_key(pool_id), expected=pool, new=result.pool), ticket_write])

        self._log(
            _EVENT_LOG_NAMES[Event.STAKE_WITHDRAWN],
            pool_id=pool_id,
            staker=staker,
            ticket=address,
            requested=amount,
            amount=moved,
            ticket_closed=closed,
            stake_acquired=result.effect.stake_acquired_after,
        )
        return OperationReceipt(
            operation=op,
            pool_id=pool_id,
            amount=moved,
            ticket_closed=closed,
            pool=result.pool,
            ticket=None if closed else result.ticket,
            ticket_address=address,
            collateral_returned=returned,
        )

    def claim(self, *, pool_id: str, staker: Identity, target_account: AccountId) -> OperationReceipt:
        """Pay out principal plus reward share after expiry and close the ticket."""
        op = "claim"
        pool = self._load_pool(op, pool_id)
        key = ticket_key(pool_id, staker)
        ticket = self.store.get(key)
        params = ActionParams(action=Action.CLAIM, now=self.clock.now(), caller=staker, pool_id=pool_id)
        result = self._run(op, pool_id, pool, ticket, params)
        assert result.effect is not None and ticket is not None

        authority = derive_pool_authority(pool_id, pool.admin, pool.authority_bump)
        payout = self._guarded(op, pool_id, result.effect.transfer_amount, pool.stake_vault_id, target_account, authority)

        # The pool record is unchanged: stake_acquired_amount stays the denominator for later claims.
        record = ClaimRecord(
            pool_id=pool_id,
            staker=staker,
            principal=ticket.staked_amount,
            reward_share=result.effect.reward_share,
            payout=payout,
            claimed_at=params.now,
        )
        returned = self._commit(
            [
                RecordWrite(key=key, expected=ticket, close_to=staker),
                RecordWrite(key=claim_key(pool_id, staker), expected=None, new=record, payer=staker, collateral=0),
            ]
        )

        address = derive_ticket_address(pool_id, staker, ticket.authority_bump)
        self._log(
            _EVENT_LOG_NAMES[Event.REWARD_CLAIMED],
            pool_id=pool_id,
            staker=staker,
            ticket=address,
            principal=ticket.staked_amount,
            reward_share=result.effect.reward_share,
            amount=payout,
        )
        return OperationReceipt(
            operation=op,
            pool_id=pool_id,
            amount=payout,
            ticket_closed=True,
            pool=pool,
            ticket_address=address,
            reward_share=result.effect.reward_share,
            collateral_returned=returned,
        )

    def fund_reward(
        self,
        *,
        pool_id: str,
        funder: Identity,
        amount: int,
        source_account: AccountId,
    ) -> OperationReceipt:
        op = "fund_reward"
        pool = self._load_pool(op, pool_id)
        self._check_amount(op, pool_id, amount)
        params = ActionParams(
            action=Action.FUND_REWARD,
            now=self.clock.now(),
            caller=funder,
            pool_id=pool_id,
            amount=amount,
            source_balance=self._source_balance(op, pool_id, source_account),
        )
        result = self._run(op, pool_id, pool, None, params)
        assert result.effect is not None

        moved = self._guarded(op, pool_id, result.effect.transfer_amount, source_account, pool.stake_vault_id, funder)
        self._commit([RecordWrite(key=pool_key(pool_id), expected=pool, new=result.pool)])

        self._log(
            _EVENT_LOG_NAMES[Event.REWARD_FUNDED],
            pool_id=pool_id,
            funder=funder,
            requested=amount,
            amount=moved,
            deposited_reward=result.effect.deposited_reward_after,
        )
        return OperationReceipt(operation=op, pool_id=pool_id, amount=moved, pool=result.pool)
