"""Tests for stakepool/core/pool/invariants.py."""

from dataclasses import replace

from stakepool.core.pool import Ticket, new_pool
from stakepool.core.pool.invariants import check_all, check_conservation


def _pool(**kwargs):
    base = new_pool(
        admin="admin",
        authority_bump=255,
        genesis=1000,
        topup_duration=100,
        lockup_duration=200,
        target_amount=1000,
        reward_amount=100,
        stake_asset_id="STAKE",
        stake_vault_id="vault",
    )
    return replace(base, **kwargs)


def _ticket(staker="alice", staked=0):
    return Ticket(staker=staker, pool="pool-1", staked_amount=staked, authority_bump=1)


class TestCheckAll:
    def test_fresh_pool_passes(self):
        assert check_all(_pool()) == []

    def test_stake_above_target(self):
        assert check_all(_pool(stake_acquired_amount=1001)) == ["inv_stake_within_target"]

    def test_rewards_above_budget(self):
        assert check_all(_pool(deposited_reward_amount=101)) == ["inv_rewards_within_budget"]

    def test_topup_after_lockup(self):
        assert "inv_topup_not_after_lockup" in check_all(_pool(topup_duration=300))

    def test_bump_out_of_domain(self):
        assert "inv_pool_fields_in_domain" in check_all(_pool(authority_bump=300))

    def test_ticket_above_pool_total(self):
        p = _pool(stake_acquired_amount=10)
        assert check_all(p, _ticket(staked=11)) == ["inv_ticket_within_pool"]

    def test_ticket_within_pool(self):
        p = _pool(stake_acquired_amount=10)
        assert check_all(p, _ticket(staked=10)) == []


class TestConservation:
    def test_open_tickets_sum_to_acquired(self):
        p = _pool(stake_acquired_amount=1000)
        assert check_conservation(p, [_ticket("a", 300), _ticket("b", 700)])

    def test_missing_stake_detected(self):
        p = _pool(stake_acquired_amount=1000)
        assert not check_conservation(p, [_ticket("a", 300)])

    def test_claimed_principal_balances_closed_tickets(self):
        p = _pool(stake_acquired_amount=1000)
        assert check_conservation(p, [_ticket("b", 700)], claimed_principal=300)
        assert check_conservation(p, [], claimed_principal=1000)
