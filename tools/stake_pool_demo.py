#!/usr/bin/env python3
"""Run a single-staker pool lifecycle against in-memory collaborators.

Creates a pool, deposits, shows the PoolFull rejection, funds the reward,
advances the clock past the lockup and claims. Every receipt is printed.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stakepool.core.pool import StakePoolError
from stakepool.integration import (
    EngineConfig,
    LedgerTransfer,
    ManualClock,
    PoolView,
    StakePoolEngine,
    configure_logging,
    derive_pool_authority,
    engine_config_from_env,
    load_engine_config,
)
from stakepool.state import TokenLedger


def _print_receipt(receipt) -> None:
    print(f"[stake-demo] {receipt.operation}: {json.dumps(asdict(receipt), sort_keys=True)}")


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--target", type=int, default=1000, help="stake target amount")
    ap.add_argument("--reward", type=int, default=100, help="reward budget")
    ap.add_argument("--topup", type=int, default=100, help="topup duration (seconds)")
    ap.add_argument("--lockup", type=int, default=200, help="lockup duration (seconds)")
    ap.add_argument("--stake", type=int, default=1000, help="amount the staker deposits")
    ap.add_argument("--genesis", type=int, default=1_700_000_000, help="clock start (unix seconds)")
    ap.add_argument("--config", type=Path, default=None, help="engine config YAML")
    ap.add_argument("--log-level", default=None, help="override STAKEPOOL_LOG_LEVEL")
    args = ap.parse_args(argv)

    configure_logging(args.log_level)
    base = load_engine_config(args.config) if args.config is not None else EngineConfig()
    config = engine_config_from_env(base)

    ledger = TokenLedger()
    clock = ManualClock(args.genesis)
    engine = StakePoolEngine(transfer=LedgerTransfer(ledger), clock=clock, config=config)

    admin, staker, asset = "admin", "staker", "STAKE"
    pool_id = engine.next_pool_id(admin)
    bump = 255
    authority = derive_pool_authority(pool_id, admin, bump)
    ledger.open_account("vault", authority.address, asset)
    ledger.open_account("staker-wallet", staker, asset, args.stake + 500)
    ledger.open_account("admin-wallet", admin, asset, args.reward)
    engine.store.fund_native(staker, config.ticket_collateral)

    try:
        _print_receipt(
            engine.initialize(
                admin=admin,
                authority_bump=bump,
                topup_duration=args.topup,
                lockup_duration=args.lockup,
                target_amount=args.target,
                reward_amount=args.reward,
                stake_asset_id=asset,
                stake_vault_id="vault",
                pool_id=pool_id,
            )
        )
        _print_receipt(
            engine.deposit(pool_id=pool_id, staker=staker, amount=args.stake, ticket_bump=254, source_account="staker-wallet")
        )
        try:
            engine.deposit(pool_id=pool_id, staker=staker, amount=500, ticket_bump=254, source_account="staker-wallet")
        except StakePoolError as exc:
            print(f"[stake-demo] second deposit rejected: {exc}")
        _print_receipt(
            engine.fund_reward(pool_id=pool_id, funder=admin, amount=args.reward, source_account="admin-wallet")
        )
        clock.advance(args.lockup + 1)
        _print_receipt(engine.claim(pool_id=pool_id, staker=staker, target_account="staker-wallet"))
    except StakePoolError as exc:
        print(f"[stake-demo] FAIL: {exc}")
        return 1

    pool = engine.get_pool(pool_id)
    assert pool is not None
    view = PoolView(pool_id=pool_id, pool=pool)
    print(f"[stake-demo] expected_apy={view.expected_apy():.6f} apy={view.apy():.6f}")
    print(f"[stake-demo] staker balance={ledger.balance('staker-wallet')} vault balance={ledger.balance('vault')}")
    print(f"[stake-demo] records_root={engine.store.records_root()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
