"""Tests for settings and logging setup."""
import logging

import pytest
import structlog
from pydantic import ValidationError

from event_tracker.config import Settings
from event_tracker.logging import setup_logging


def test_defaults(monkeypatch):
    monkeypatch.delenv("SINK_BACKEND", raising=False)
    settings = Settings(_env_file=None)
    assert settings.SINK_BACKEND == "sql"
    assert settings.DATABASE_URL.startswith("sqlite+aiosqlite://")
    assert settings.SLACK_REQUEST_MAX_AGE_SECONDS == 300
    assert settings.ID_SEED is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DRY_RUN", "true")
    monkeypatch.setenv("ID_SEED", "42")
    monkeypatch.setenv("SLACK_LOG_CHANNEL", "C-LOG")
    settings = Settings(_env_file=None)
    assert settings.DRY_RUN is True
    assert settings.ID_SEED == 42
    assert settings.SLACK_LOG_CHANNEL == "C-LOG"


def test_unknown_sink_backend_is_rejected(monkeypatch):
    monkeypatch.setenv("SINK_BACKEND", "redis")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_setup_logging_accepts_level_name(capsys):
    setup_logging(json_output=True, level="warning")
    log = structlog.get_logger()
    log.info("hidden")
    log.warning("shown", answer=42)

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert '"event": "shown"' in out
    assert '"service": "event-tracker"' in out

    setup_logging(json_output=False, level=logging.INFO)
