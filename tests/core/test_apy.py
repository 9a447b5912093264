"""Tests for stakepool/core/apy.py (informational yield figures)."""

from dataclasses import replace

import pytest

from stakepool.core.apy import calc_apy, current_apy, expected_apy, periods_in_year, seconds_in_year
from stakepool.core.pool import new_pool

ONE_WEEK = 7 * 86_400


def _pool(**kwargs):
    base = new_pool(
        admin="admin",
        authority_bump=1,
        genesis=0,
        topup_duration=86_400,
        lockup_duration=ONE_WEEK,
        target_amount=10_000,
        reward_amount=1_000,
        stake_asset_id="STAKE",
        stake_vault_id="vault",
    )
    return replace(base, **kwargs)


class TestCalendar:
    def test_seconds_in_year(self):
        assert seconds_in_year(2023) == 365 * 86_400
        assert seconds_in_year(2024) == 366 * 86_400
        assert seconds_in_year(1900) == 365 * 86_400
        assert seconds_in_year(2000) == 366 * 86_400

    def test_weekly_lockup_compounds_52_times(self):
        assert periods_in_year(ONE_WEEK, 2023) == 52
        assert periods_in_year(ONE_WEEK, 2024) == 52

    def test_lockup_longer_than_a_year_counts_once(self):
        assert periods_in_year(2 * 366 * 86_400, 2023) == 1

    def test_non_positive_lockup(self):
        with pytest.raises(ValueError):
            periods_in_year(0, 2023)


class TestApy:
    def test_calc_apy_single_period(self):
        assert calc_apy(0.1, 1) == pytest.approx(0.1)

    def test_expected_apy(self):
        assert expected_apy(_pool(), 2023) == pytest.approx(141.04293198443193)

    def test_current_apy(self):
        pool = _pool(stake_acquired_amount=10_000, deposited_reward_amount=500)
        assert current_apy(pool, 2023) == pytest.approx(11.642808263793455)

    def test_current_apy_of_empty_pool(self):
        assert current_apy(_pool(), 2023) == 0.0
