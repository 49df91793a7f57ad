"""
Unit tests for the engine logging helpers.
"""

import logging

import pytest

from qtprompt.dialog import logging as engine_logging
from qtprompt.dialog.logging import (
    configure_logging,
    is_debug_enabled,
    level_from_env,
    logger,
    set_debug_enabled,
)


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    configure_logging(logging.WARNING)


class TestLevelFromEnv:
    def test_unset_uses_default(self, monkeypatch):
        monkeypatch.delenv(engine_logging.LOG_LEVEL_ENV_VAR, raising=False)
        assert level_from_env() == logging.WARNING
        assert level_from_env(logging.ERROR) == logging.ERROR

    def test_named_level(self, monkeypatch):
        monkeypatch.setenv(engine_logging.LOG_LEVEL_ENV_VAR, "debug")
        assert level_from_env() == logging.DEBUG

    def test_unknown_name_uses_default(self, monkeypatch):
        monkeypatch.setenv(engine_logging.LOG_LEVEL_ENV_VAR, "chatty")
        assert level_from_env() == logging.WARNING


class TestConfigureLogging:
    def test_single_stream_handler(self):
        configure_logging(logging.INFO)
        configure_logging(logging.INFO)

        assert len(logger.handlers) == 1
        assert logger.level == logging.INFO
        assert not logger.propagate

    def test_log_file_receives_records(self, tmp_path):
        path = tmp_path / "engine.log"
        configure_logging(logging.INFO, log_file=str(path))

        logger.info("dialog closed")
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        assert "[INFO] qtprompt: dialog closed" in path.read_text(encoding="utf-8")

    def test_debug_toggle(self):
        set_debug_enabled(True)
        assert is_debug_enabled()

        set_debug_enabled(False)
        assert not is_debug_enabled()
        assert logger.level == logging.WARNING
