"""Tests for structlog configuration."""

import json

import pytest

from ta_engine.utils.structured_logging import configure_structured_logging, get_logger


@pytest.fixture
def restore_logging():
    yield
    configure_structured_logging(log_level="WARNING")


class TestStructuredLogging:
    def test_level_from_settings(self, monkeypatch, capsys, restore_logging):
        monkeypatch.setenv("TA_LOG_LEVEL", "error")
        configure_structured_logging()
        logger = get_logger("ta_engine.tests")

        logger.warning("ignored_event")
        logger.error("kept_event", symbol="AAPL")

        lines = capsys.readouterr().out.strip().splitlines()
        assert len(lines) == 1
        event = json.loads(lines[0])
        assert event["event"] == "kept_event"
        assert event["level"] == "error"
        assert event["logger_name"] == "ta_engine.tests"
        assert event["symbol"] == "AAPL"
        assert "timestamp" in event

    def test_explicit_level_overrides_settings(self, monkeypatch, capsys, restore_logging):
        monkeypatch.setenv("TA_LOG_LEVEL", "error")
        configure_structured_logging(log_level="info")

        get_logger(__name__).info("info_event")

        assert "info_event" in capsys.readouterr().out
