"""
Structured JSON-line logging for the stake pool shell.

- Stdlib ``logging`` only; one named logger per subsystem.
- Level from STAKEPOOL_LOG_LEVEL (default INFO).
- ``configure_logging()`` is safe to call multiple times.
"""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict

Json = Dict[str, Any]

ENGINE_LOGGER = "stakepool.engine"
TRANSFER_LOGGER = "stakepool.transfer"


def _now_ms() -> int:
    return int(time.time() * 1000)


def configure_logging(level: str | None = None) -> None:
    level_name = (level or os.environ.get("STAKEPOOL_LOG_LEVEL") or "INFO").strip().upper()
    resolved = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("stakepool")
    if getattr(logger, "_stakepool_configured", False):  # type: ignore[attr-defined]
        logger.setLevel(resolved)
        return

    handler = logging.StreamHandler()
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger.handlers = [handler]
    logger.setLevel(resolved)
    logger.propagate = False
    setattr(logger, "_stakepool_configured", True)  # type: ignore[attr-defined]


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit a single JSONL log event."""
    payload: Json = {"ts_ms": _now_ms(), "event": str(event)}
    payload.update(fields)
    try:
        message = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        parts = [f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields.keys())]
        message = " ".join(parts)
    logger.log(level, message)
