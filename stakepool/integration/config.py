"""
Engine configuration.

Sources, lowest to highest precedence: built-in defaults, a YAML file
(``load_engine_config``), STAKEPOOL_* environment variables
(``engine_config_from_env``). Every loader validates fail-fast.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..core.pool.math import U64_MAX


def _as_int(v: Any, default: int) -> int:
    if v is None:
        return int(default)
    if isinstance(v, bool):
        raise ValueError(f"expected an integer, got {v!r}")
    try:
        return int(v)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"expected an integer, got {v!r}") from exc


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class EngineConfig:
    # Native units the allocation collaborator charges per ticket record.
    ticket_collateral: int = 0
    log_events: bool = True
    # Upper bound on any single requested amount.
    max_amount: int = U64_MAX


def validate_engine_config(cfg: EngineConfig) -> None:
    if int(cfg.ticket_collateral) < 0:
        raise ValueError(f"ticket_collateral must be >= 0; got: {cfg.ticket_collateral}")
    if not (0 < int(cfg.max_amount) <= U64_MAX):
        raise ValueError(f"max_amount must be 1..{U64_MAX}; got: {cfg.max_amount}")


def engine_config_from_mapping(raw: Mapping[str, Any], base: Optional[EngineConfig] = None) -> EngineConfig:
    d = base or EngineConfig()
    unknown = set(raw) - {"ticket_collateral", "log_events", "max_amount"}
    if unknown:
        raise ValueError(f"unknown engine config keys: {sorted(unknown)}")
    cfg = EngineConfig(
        ticket_collateral=_as_int(raw.get("ticket_collateral"), d.ticket_collateral),
        log_events=_as_bool(raw.get("log_events"), d.log_events),
        max_amount=_as_int(raw.get("max_amount"), d.max_amount),
    )
    validate_engine_config(cfg)
    return cfg


def load_engine_config(path: str | Path) -> EngineConfig:
    """Read an EngineConfig from a YAML mapping (an empty file yields defaults)."""
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("engine config must be a YAML mapping")
    section = raw.get("engine", raw)
    if not isinstance(section, dict):
        raise ValueError("engine config 'engine' section must be a mapping")
    return engine_config_from_mapping(section)


def engine_config_from_env(
    base: Optional[EngineConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> EngineConfig:
    """Overlay STAKEPOOL_TICKET_COLLATERAL / STAKEPOOL_LOG_EVENTS / STAKEPOOL_MAX_AMOUNT.

    If STAKEPOOL_CONFIG names a YAML file and no ``base`` is given, it is loaded first.
    """
    env = os.environ if environ is None else environ
    if base is None:
        path = (env.get("STAKEPOOL_CONFIG") or "").strip()
        base = load_engine_config(path) if path else EngineConfig()

    cfg = replace(
        base,
        ticket_collateral=_as_int(env.get("STAKEPOOL_TICKET_COLLATERAL"), base.ticket_collateral),
        log_events=_as_bool(env.get("STAKEPOOL_LOG_EVENTS"), base.log_events),
        max_amount=_as_int(env.get("STAKEPOOL_MAX_AMOUNT"), base.max_amount),
    )
    validate_engine_config(cfg)
    return cfg
