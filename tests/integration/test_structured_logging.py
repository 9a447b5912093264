"""Tests for stakepool/integration/structured_logging.py."""

import json
import logging

import pytest

from stakepool.integration.structured_logging import configure_logging, log_event


@pytest.fixture
def restore_stakepool_logger():
    logger = logging.getLogger("stakepool")
    saved = (list(logger.handlers), logger.level, logger.propagate, getattr(logger, "_stakepool_configured", None))
    yield logger
    logger.handlers, logger.level, logger.propagate = saved[0], saved[1], saved[2]
    if saved[3] is None:
        if hasattr(logger, "_stakepool_configured"):
            delattr(logger, "_stakepool_configured")
    else:
        setattr(logger, "_stakepool_configured", saved[3])


def test_log_event_emits_sorted_json(caplog):
    caplog.set_level(logging.INFO, logger="stakepool.test")
    log_event(logging.getLogger("stakepool.test"), "demo", b=2, a=1)
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "demo"
    assert payload["a"] == 1 and payload["b"] == 2
    assert "ts_ms" in payload


def test_unserializable_fields_fall_back_to_key_value(caplog):
    caplog.set_level(logging.INFO, logger="stakepool.test")
    log_event(logging.getLogger("stakepool.test"), "demo", obj=object())
    assert caplog.records[-1].getMessage().startswith("event=demo obj=")


def test_configure_logging_level_from_env(monkeypatch, restore_stakepool_logger):
    monkeypatch.setenv("STAKEPOOL_LOG_LEVEL", "debug")
    configure_logging()
    assert restore_stakepool_logger.level == logging.DEBUG
    assert len(restore_stakepool_logger.handlers) == 1

    # Second call only adjusts the level.
    configure_logging("warning")
    assert restore_stakepool_logger.level == logging.WARNING
    assert len(restore_stakepool_logger.handlers) == 1
