from __future__ import annotations

import json

import pytest
from prometheus_client import CollectorRegistry

from fairplay.logging import (
    REDACT_KEYS,
    _redact_secrets,
    bind_session_context,
    clear_session_context,
    get_logger,
    setup_logging,
)
from fairplay.metrics import Metrics


def test_redaction_masks_secret_keys():
    ev = {"event": "x", "user_secret": "0xabc", "house_seed": "houseSeed", "account": "0x1", "seed": None}
    out = _redact_secrets(None, "info", dict(ev))
    assert out["user_secret"] == "***"
    assert out["house_seed"] == "***"
    assert out["account"] == "0x1"
    assert out["seed"] is None
    assert {"user_secret", "house_secret", "secret", "seed"} <= REDACT_KEYS


def test_json_logs_carry_context_and_hide_secrets(capsys):
    setup_logging(level="INFO", log_format="json")
    try:
        bind_session_context(account="0xabc", game="crash")
        get_logger("fairplay.test").info("committed", user_secret="0xdeadbeef")
    finally:
        clear_session_context()

    line = [ln for ln in capsys.readouterr().err.splitlines() if "committed" in ln][-1]
    ev = json.loads(line)
    assert ev["account"] == "0xabc"
    assert ev["game"] == "crash"
    assert ev["user_secret"] == "***"
    assert ev["service"] == "fairplay"
    assert "deadbeef" not in line


def test_metrics_vocabulary_is_bounded():
    reg = CollectorRegistry()
    m = Metrics(registry=reg)
    m.record_start("committed")
    m.record_start("something-unexpected")
    m.record_move(win=True)
    m.record_move(win=False)
    m.record_settle("settled")
    m.record_recover("bogus")
    with m.settle_timer():
        pass

    assert reg.get_sample_value("fairplay_session_starts_total", {"outcome": "committed"}) == 1
    assert reg.get_sample_value("fairplay_session_starts_total", {"outcome": "error"}) == 1
    assert reg.get_sample_value("fairplay_session_moves_total", {"outcome": "loss"}) == 1
    assert reg.get_sample_value("fairplay_session_recoveries_total", {"outcome": "invalid"}) == 1
    assert reg.get_sample_value("fairplay_session_settle_seconds_count") == 1
