import logging

import pytest

from missionboard.core.config import Settings, validate_config
from missionboard.core.logging import (
    JsonFormatter,
    PrettyFormatter,
    RequestContextFilter,
    challenge_id_ctx_var,
    request_id_ctx_var,
)


def test_default_settings_are_valid():
    assert validate_config(strict=True, settings_obj=Settings()) is True


def test_unknown_timezone_strict_raises():
    cfg = Settings(SCORING_TIMEZONE="Mars/Olympus_Mons")
    with pytest.raises(RuntimeError) as exc:
        validate_config(strict=True, settings_obj=cfg)
    assert "SCORING_TIMEZONE" in str(exc.value)


def test_unknown_timezone_non_strict_warns(caplog):
    cfg = Settings(SCORING_TIMEZONE="Mars/Olympus_Mons")
    logger = logging.getLogger("missionboard.test")
    with caplog.at_level(logging.WARNING, logger="missionboard.test"):
        assert validate_config(strict=False, settings_obj=cfg, logger=logger) is False
    assert "SCORING_TIMEZONE" in caplog.text


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("SCORING_TIMEZONE", "UTC")
    monkeypatch.setenv("SCORING_STRICT_WEIGHTS", "true")
    cfg = Settings()
    assert cfg.SCORING_TIMEZONE == "UTC"
    assert cfg.SCORING_STRICT_WEIGHTS is True


def _record(**extra):
    record = logging.LogRecord("missionboard", logging.INFO, __file__, 1, "rankings.computed", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_structured_fields():
    output = JsonFormatter().format(_record(request_id="rid-1", challenge_id="ny24", participants=3))
    assert '"challenge_id": "ny24"' in output
    assert '"request_id": "rid-1"' in output
    assert '"participants": 3' in output


def test_pretty_formatter_shows_request_and_challenge():
    token = request_id_ctx_var.set("rid-2")
    try:
        output = PrettyFormatter().format(_record(request_id="rid-2", challenge_id="ny24"))
    finally:
        request_id_ctx_var.reset(token)
    assert "[rid=rid-2]" in output
    assert "[challenge=ny24]" in output
    assert output.endswith("rankings.computed")


def test_pretty_formatter_shows_ranking_date_and_participant():
    output = PrettyFormatter().format(_record(challenge_id="ny24", user_id="bob", as_of="2024-01-02"))
    assert "[challenge=ny24][user=bob][as_of=2024-01-02]" in output


def test_context_filter_fills_request_and_challenge():
    rid_token = request_id_ctx_var.set("rid-3")
    cid_token = challenge_id_ctx_var.set("ny24")
    try:
        record = _record()
        RequestContextFilter().filter(record)
    finally:
        challenge_id_ctx_var.reset(cid_token)
        request_id_ctx_var.reset(rid_token)
    assert record.request_id == "rid-3"
    assert record.challenge_id == "ny24"


def test_context_filter_keeps_explicit_challenge():
    token = challenge_id_ctx_var.set("from-path")
    try:
        record = _record(challenge_id="explicit")
        RequestContextFilter().filter(record)
    finally:
        challenge_id_ctx_var.reset(token)
    assert record.challenge_id == "explicit"
