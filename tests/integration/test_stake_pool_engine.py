"""End-to-end tests for StakePoolEngine over in-memory collaborators.

Pool under test: target 1000, reward 100, topup 100s, lockup 200s, created at
t=1000 (topup until 1099, locked 1100..1200, expired from 1201).
"""

import logging

import pytest

from stakepool.core.pool import ErrorCode, StakePoolError
from stakepool.core.pool.state import pool_to_dict
from stakepool.integration import (
    EngineConfig,
    LedgerTransfer,
    ManualClock,
    StakePoolEngine,
    derive_pool_authority,
    derive_ticket_address,
    claim_key,
    pool_key,
    ticket_key,
)
from stakepool.state import RecordExistsError, RecordStore, TokenLedger

GENESIS = 1000
POOL_ID = "pool-1"
BUMP = 255


class FeeOnTransfer(LedgerTransfer):
    def transfer(self, amount, source, destination, authority):
        super().transfer(amount, source, destination, authority)
        self.ledger.subtract(destination, 1)


def _setup(config=None, collaborator_cls=LedgerTransfer, create_pool=True):
    ledger = TokenLedger()
    authority = derive_pool_authority(POOL_ID, "admin", BUMP)
    ledger.open_account("vault", authority.address, "STAKE")
    ledger.open_account("alice-wallet", "alice", "STAKE", 2000)
    ledger.open_account("bob-wallet", "bob", "STAKE", 2000)
    ledger.open_account("admin-wallet", "admin", "STAKE", 1000)
    clock = ManualClock(GENESIS)
    engine = StakePoolEngine(transfer=collaborator_cls(ledger), clock=clock, config=config or EngineConfig())
    if create_pool:
        _initialize(engine)
    return engine, ledger, clock


def _initialize(engine, **overrides):
    kwargs = dict(
        admin="admin",
        authority_bump=BUMP,
        topup_duration=100,
        lockup_duration=200,
        target_amount=1000,
        reward_amount=100,
        stake_asset_id="STAKE",
        stake_vault_id="vault",
        pool_id=POOL_ID,
    )
    kwargs.update(overrides)
    return engine.initialize(**kwargs)


def _deposit(engine, staker, amount, bump=1):
    return engine.deposit(
        pool_id=POOL_ID, staker=staker, amount=amount, ticket_bump=bump, source_account=f"{staker}-wallet",
    )


def _withdraw(engine, staker, amount):
    return engine.withdraw(pool_id=POOL_ID, staker=staker, amount=amount, target_account=f"{staker}-wallet")


def _claim(engine, staker):
    return engine.claim(pool_id=POOL_ID, staker=staker, target_account=f"{staker}-wallet")


def _fund(engine, amount):
    return engine.fund_reward(pool_id=POOL_ID, funder="admin", amount=amount, source_account="admin-wallet")


def _rejected(fn, *args, **kwargs):
    with pytest.raises(StakePoolError) as exc_info:
        fn(*args, **kwargs)
    return exc_info.value.code


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------

class TestScenarios:
    def test_single_staker_lifecycle(self):
        engine, ledger, clock = _setup()

        r = _deposit(engine, "alice", 1000)
        assert r.amount == 1000
        assert engine.get_pool(POOL_ID).stake_acquired_amount == 1000

        assert _rejected(_deposit, engine, "bob", 500) == ErrorCode.POOL_FULL
        assert ledger.balance("bob-wallet") == 2000
        assert engine.get_ticket(POOL_ID, "bob") is None

        assert _fund(engine, 100).amount == 100
        assert engine.get_pool(POOL_ID).deposited_reward_amount == 100

        clock.set(GENESIS + 201)
        r = _claim(engine, "alice")
        assert r.amount == 1100
        assert r.reward_share == 100
        assert r.ticket_closed
        assert engine.get_ticket(POOL_ID, "alice") is None
        assert ledger.balance("alice-wallet") == 2100
        assert ledger.balance("vault") == 0
        # Claims keep the pool total as the reward denominator.
        assert engine.get_pool(POOL_ID).stake_acquired_amount == 1000
        assert engine.check_pool_conservation(POOL_ID)

    def test_two_stakers_proportional(self):
        engine, ledger, clock = _setup()
        _deposit(engine, "alice", 300)
        _deposit(engine, "bob", 700)
        _fund(engine, 100)
        clock.set(GENESIS + 201)

        assert _claim(engine, "alice").amount == 330
        assert engine.check_pool_conservation(POOL_ID)
        assert _claim(engine, "bob").amount == 770
        assert ledger.balance("vault") == 0
        assert [c.payout for c in engine.claims(POOL_ID)] == [330, 770]
        assert engine.claimed_principal(POOL_ID) == 1000
        assert engine.check_pool_conservation(POOL_ID)


# ---------------------------------------------------------------------------
# initialize
# ---------------------------------------------------------------------------

class TestInitialize:
    def test_creates_pool_at_clock_time(self):
        engine, _, _ = _setup()
        pool = engine.get_pool(POOL_ID)
        assert pool.genesis == GENESIS
        assert pool.admin == "admin"
        assert pool.stake_vault_id == "vault"
        assert engine.pool_authority(POOL_ID) == derive_pool_authority(POOL_ID, "admin", BUMP)

    def test_duplicate_pool_id(self):
        engine, _, _ = _setup()
        with pytest.raises(RecordExistsError):
            _initialize(engine)

    def test_topup_longer_than_lockup(self):
        engine, _, _ = _setup(create_pool=False)
        assert _rejected(_initialize, engine, topup_duration=300) == ErrorCode.INVALID_CONFIGURATION
        assert engine.get_pool(POOL_ID) is None

    def test_vault_not_owned_by_authority(self):
        engine, _, _ = _setup(create_pool=False)
        assert _rejected(_initialize, engine, stake_vault_id="alice-wallet") == ErrorCode.INVALID_AUTHORITY

    def test_vault_owned_by_authority_of_other_bump(self):
        engine, _, _ = _setup(create_pool=False)
        assert _rejected(_initialize, engine, authority_bump=254) == ErrorCode.INVALID_AUTHORITY

    def test_vault_asset_mismatch(self):
        engine, _, _ = _setup(create_pool=False)
        assert _rejected(_initialize, engine, stake_asset_id="OTHER") == ErrorCode.INVALID_AUTHORITY

    def test_unknown_vault(self):
        engine, _, _ = _setup(create_pool=False)
        assert _rejected(_initialize, engine, stake_vault_id="nowhere") == ErrorCode.INVALID_AUTHORITY

    def test_bump_out_of_range(self):
        engine, _, _ = _setup(create_pool=False)
        assert _rejected(_initialize, engine, authority_bump=256) == ErrorCode.INVALID_BUMP

    def test_default_pool_id(self):
        engine, ledger, _ = _setup(create_pool=False)
        pool_id = engine.next_pool_id("admin")
        ledger.open_account("vault-2", derive_pool_authority(pool_id, "admin", 7).address, "STAKE")
        r = _initialize(engine, pool_id=None, authority_bump=7, stake_vault_id="vault-2")
        assert r.pool_id == pool_id
        assert engine.next_pool_id("admin") != pool_id


# ---------------------------------------------------------------------------
# deposit / withdraw
# ---------------------------------------------------------------------------

class TestDeposit:
    def test_clamped_deposit(self):
        engine, ledger, _ = _setup()
        _deposit(engine, "alice", 800)
        r = _deposit(engine, "bob", 500)
        assert r.amount == 200
        assert ledger.balance("bob-wallet") == 1800
        assert engine.get_ticket(POOL_ID, "bob").staked_amount == 200

    def test_repeated_deposits_accumulate(self):
        engine, _, _ = _setup()
        _deposit(engine, "alice", 100)
        r = _deposit(engine, "alice", 150)
        assert r.ticket.staked_amount == 250
        assert r.ticket_address == derive_ticket_address(POOL_ID, "alice", 1)

    def test_bump_mismatch_on_existing_ticket(self):
        engine, _, _ = _setup()
        _deposit(engine, "alice", 100, bump=1)
        assert _rejected(_deposit, engine, "alice", 100, bump=2) == ErrorCode.INVALID_BUMP

    def test_insufficient_funds(self):
        engine, ledger, _ = _setup()
        assert _rejected(_deposit, engine, "alice", 5000) == ErrorCode.INSUFFICIENT_FUNDS
        assert ledger.balance("alice-wallet") == 2000

    def test_locked_deposit_has_no_side_effects(self):
        engine, ledger, clock = _setup()
        _deposit(engine, "alice", 100)
        root = engine.store.records_root()
        clock.set(GENESIS + 100)
        assert _rejected(_deposit, engine, "alice", 100) == ErrorCode.POOL_LOCKED
        assert engine.store.records_root() == root
        assert ledger.balance("alice-wallet") == 1900

    def test_unknown_pool(self):
        engine, _, _ = _setup()
        code = _rejected(
            engine.deposit, pool_id="nope", staker="alice", amount=1, ticket_bump=1, source_account="alice-wallet",
        )
        assert code == ErrorCode.POOL_NOT_FOUND

    def test_amount_above_configured_max(self):
        engine, _, _ = _setup(EngineConfig(max_amount=500))
        assert _rejected(_deposit, engine, "alice", 600) == ErrorCode.INTEGER_OVERFLOW

    def test_fee_on_transfer_leaves_bookkeeping_untouched(self):
        engine, _, _ = _setup(collaborator_cls=FeeOnTransfer)
        assert _rejected(_deposit, engine, "alice", 100) == ErrorCode.INVALID_AMOUNT_TRANSFERRED
        assert engine.get_pool(POOL_ID).stake_acquired_amount == 0
        assert engine.get_ticket(POOL_ID, "alice") is None


class TestTicketCollateral:
    def test_ticket_collateral_charged_and_returned(self):
        engine, _, _ = _setup(EngineConfig(ticket_collateral=5))
        engine.store.fund_native("alice", 5)
        _deposit(engine, "alice", 100)
        assert engine.store.native_balance("alice") == 0
        r = _withdraw(engine, "alice", 100)
        assert r.ticket_closed
        assert r.collateral_returned == 5
        assert engine.store.native_balance("alice") == 5

    def test_missing_collateral_rejected_before_transfer(self):
        engine, ledger, _ = _setup(EngineConfig(ticket_collateral=5))
        assert _rejected(_deposit, engine, "alice", 100) == ErrorCode.INSUFFICIENT_FUNDS
        assert ledger.balance("alice-wallet") == 2000
        assert engine.get_pool(POOL_ID).stake_acquired_amount == 0


class TestWithdraw:
    def test_partial(self):
        engine, ledger, _ = _setup()
        _deposit(engine, "alice", 400)
        r = _withdraw(engine, "alice", 150)
        assert r.amount == 150
        assert not r.ticket_closed
        assert ledger.balance("alice-wallet") == 1750
        assert engine.get_ticket(POOL_ID, "alice").staked_amount == 250
        assert engine.get_pool(POOL_ID).stake_acquired_amount == 250

    def test_full_withdrawal_reclaims_ticket(self):
        engine, ledger, _ = _setup()
        _deposit(engine, "alice", 400)
        r = _withdraw(engine, "alice", 10_000)
        assert r.amount == 400
        assert r.ticket_closed
        assert r.ticket is None
        assert engine.get_ticket(POOL_ID, "alice") is None
        assert ledger.balance("alice-wallet") == 2000

    def test_zero_withdrawal_is_a_no_op(self):
        engine, ledger, _ = _setup()
        _deposit(engine, "alice", 400)
        root = engine.store.records_root()
        r = _withdraw(engine, "alice", 0)
        assert r.amount == 0
        assert not r.ticket_closed
        assert engine.store.records_root() == root
        assert ledger.balance("alice-wallet") == 1600

    def test_without_ticket(self):
        engine, _, _ = _setup()
        assert _rejected(_withdraw, engine, "alice", 10) == ErrorCode.TICKET_NOT_FOUND

    def test_locked(self):
        engine, _, clock = _setup()
        _deposit(engine, "alice", 400)
        clock.set(GENESIS + 150)
        assert _rejected(_withdraw, engine, "alice", 10) == ErrorCode.POOL_LOCKED

    def test_withdraw_into_foreign_asset_account(self):
        engine, ledger, _ = _setup()
        ledger.open_account("alice-other", "alice", "OTHER")
        _deposit(engine, "alice", 400)
        root = engine.store.records_root()
        code = _rejected(engine.withdraw, pool_id=POOL_ID, staker="alice", amount=10, target_account="alice-other")
        assert code == ErrorCode.TRANSFER_FAILED
        assert engine.store.records_root() == root


# ---------------------------------------------------------------------------
# claim / fund_reward
# ---------------------------------------------------------------------------

class TestClaim:
    def test_before_expiry(self):
        engine, _, clock = _setup()
        _deposit(engine, "alice", 400)
        clock.set(GENESIS + 200)
        assert _rejected(_claim, engine, "alice") == ErrorCode.POOL_NOT_EXPIRED
        assert engine.get_ticket(POOL_ID, "alice") is not None

    def test_claim_twice(self):
        engine, _, clock = _setup()
        _deposit(engine, "alice", 400)
        clock.set(GENESIS + 201)
        _claim(engine, "alice")
        assert _rejected(_claim, engine, "alice") == ErrorCode.TICKET_NOT_FOUND

    def test_underfunded_vault_rejects_claim_and_keeps_ticket(self):
        # Payout uses the full reward budget; an underfunded vault cannot cover it.
        engine, _, clock = _setup()
        _deposit(engine, "alice", 1000)
        _fund(engine, 50)
        clock.set(GENESIS + 201)
        assert _rejected(_claim, engine, "alice") == ErrorCode.INSUFFICIENT_FUNDS
        assert engine.get_ticket(POOL_ID, "alice") is not None
        assert engine.claims(POOL_ID) == []

    def test_claim_record_committed_with_ticket_close(self):
        engine, _, clock = _setup()
        _deposit(engine, "alice", 300)
        _fund(engine, 100)
        clock.set(GENESIS + 201)
        _claim(engine, "alice")
        record = engine.store.get(claim_key(POOL_ID, "alice"))
        assert record.principal == 300
        assert record.payout == 400
        assert record.reward_share == 100
        assert record.claimed_at == GENESIS + 201
        assert engine.store.get(ticket_key(POOL_ID, "alice")) is None


class TestFundReward:
    def test_clamped_to_budget(self):
        engine, ledger, _ = _setup()
        _fund(engine, 60)
        r = _fund(engine, 100)
        assert r.amount == 40
        assert ledger.balance("admin-wallet") == 900
        assert engine.get_pool(POOL_ID).deposited_reward_amount == 100

    def test_budget_full(self):
        engine, _, _ = _setup()
        _fund(engine, 100)
        assert _rejected(_fund, engine, 1) == ErrorCode.NOT_ENOUGH_REWARDS

    def test_allowed_while_locked(self):
        engine, _, clock = _setup()
        clock.set(GENESIS + 150)
        assert _fund(engine, 10).amount == 10

    def test_expired(self):
        engine, _, clock = _setup()
        clock.set(GENESIS + 201)
        assert _rejected(_fund, engine, 10) == ErrorCode.POOL_EXPIRED


# ---------------------------------------------------------------------------
# logging / records
# ---------------------------------------------------------------------------

class TestEngineLogging:
    def test_operations_and_rejections_logged(self, caplog):
        caplog.set_level(logging.INFO, logger="stakepool.engine")
        engine, _, _ = _setup()
        _deposit(engine, "alice", 1000)
        with pytest.raises(StakePoolError):
            _deposit(engine, "bob", 1)
        text = caplog.text
        assert '"event":"pool_initialized"' in text
        assert '"event":"stake_deposited"' in text
        assert '"event":"operation_rejected"' in text
        assert '"code":"PoolFull"' in text

    def test_records_are_keyed_by_pool_and_staker(self):
        engine, _, _ = _setup()
        _deposit(engine, "alice", 10)
        snap = engine.store.snapshot()
        assert snap[pool_key(POOL_ID)]["type"] == "Pool"
        assert snap[ticket_key(POOL_ID, "alice")]["fields"]["staked_amount"] == 10
        assert snap[pool_key(POOL_ID)]["fields"] == pool_to_dict(engine.get_pool(POOL_ID))

    def test_snapshot_includes_claims(self):
        engine, _, clock = _setup()
        _deposit(engine, "alice", 10)
        _fund(engine, 100)
        clock.set(GENESIS + 201)
        before = engine.store.records_root()
        _claim(engine, "alice")
        snap = engine.store.snapshot()
        assert ticket_key(POOL_ID, "alice") not in snap
        assert snap[claim_key(POOL_ID, "alice")]["type"] == "ClaimRecord"
        assert snap[claim_key(POOL_ID, "alice")]["fields"]["payout"] == 110
        assert engine.store.records_root() != before


class TestSharedStore:
    def test_claims_survive_engine_rebuild(self):
        engine, ledger, clock = _setup()
        _deposit(engine, "alice", 300)
        _deposit(engine, "bob", 700)
        _fund(engine, 100)
        clock.set(GENESIS + 201)
        _claim(engine, "alice")

        rebuilt = StakePoolEngine(transfer=LedgerTransfer(ledger), store=engine.store, clock=clock)
        assert rebuilt.claimed_principal(POOL_ID) == 300
        assert rebuilt.check_pool_conservation(POOL_ID)

        assert _claim(rebuilt, "bob").amount == 770
        assert [c.staker for c in engine.claims(POOL_ID)] == ["alice", "bob"]
        assert engine.check_pool_conservation(POOL_ID)

    def test_store_collateral_must_match_config(self):
        store = RecordStore(collateral_per_record=5)
        with pytest.raises(ValueError):
            StakePoolEngine(transfer=LedgerTransfer(TokenLedger()), store=store)
        engine = StakePoolEngine(
            transfer=LedgerTransfer(TokenLedger()), store=store, config=EngineConfig(ticket_collateral=5),
        )
        assert engine.store is store
