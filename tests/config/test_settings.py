from __future__ import annotations

import logging

import pytest

from inkroll.config import configure_logging, get_settings
from inkroll.config.log import LOGGER_NAME


def test_settings_defaults(tmp_path) -> None:
    settings = get_settings()
    assert settings.db_path_obj.name == "inkroll.sqlite3"
    assert settings.db_path_obj.parent == tmp_path
    assert settings.default_formula == "1d20"
    assert settings.max_dice is None
    assert settings.max_sides is None
    assert settings.recent_limit == 10
    assert settings.log_level == "INFO"


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKROLL_DEFAULT_FORMULA", " 2d6+3 ")
    monkeypatch.setenv("INKROLL_MAX_DICE", "50")
    monkeypatch.setenv("INKROLL_LOG_LEVEL", "debug")
    settings = get_settings()
    assert settings.default_formula == "2d6+3"
    assert settings.max_dice == 50
    assert settings.log_level == "DEBUG"


def test_settings_are_memoized() -> None:
    assert get_settings() is get_settings()


def test_invalid_default_formula(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKROLL_DEFAULT_FORMULA", "d20")
    with pytest.raises(RuntimeError, match="Invalid inkroll configuration"):
        get_settings()


def test_invalid_limits(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("INKROLL_MAX_SIDES", "1")
    with pytest.raises(RuntimeError):
        get_settings()


def test_configure_logging_is_idempotent() -> None:
    logger = logging.getLogger(LOGGER_NAME)
    existing = list(logger.handlers)
    try:
        configure_logging("WARNING")
        configure_logging("DEBUG")
        added = [handler for handler in logger.handlers if handler not in existing]
        assert len(added) <= 1
        assert logger.level == logging.DEBUG
    finally:
        for handler in logger.handlers[:]:
            if handler not in existing:
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
