"""Unit tests for logging setup."""

import logging
from unittest.mock import MagicMock

import pytest

from assetbridge.modules.logging_helper import LoggingHelper


@pytest.fixture
def mock_app():
    """Mock Quart app with a real logger."""
    mock_app = MagicMock()
    mock_app.config = {"LOG_LEVEL": "info"}
    mock_app.extensions = {}
    mock_app.logger = logging.getLogger("assetbridge.tests.app")
    return mock_app


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)


def test_sets_root_level(mock_app):
    helper = LoggingHelper(mock_app)

    assert logging.getLogger().level == logging.INFO
    assert mock_app.extensions["logging_helper"] is helper


def test_quiets_webassets(mock_app):
    LoggingHelper(mock_app)
    assert logging.getLogger("webassets").level == logging.WARNING


def test_invalid_log_level(mock_app):
    mock_app.config["LOG_LEVEL"] = "LOUD"
    with pytest.raises(ValueError, match="Invalid log level: LOUD"):
        LoggingHelper(mock_app)


def test_env_override(mock_app, monkeypatch):
    monkeypatch.setenv("WEBASSETS_LOG_LEVEL", "DEBUG")
    helper = LoggingHelper(mock_app)

    assert logging.getLogger("webassets").level == logging.DEBUG
    assert helper.enabled_loggers["webassets"] == "DEBUG"


def test_set_logger_level_rejects_unknown_level(mock_app):
    helper = LoggingHelper(mock_app)
    with pytest.raises(ValueError):
        helper.set_logger_level(mock_app, "webassets", "chatty")
