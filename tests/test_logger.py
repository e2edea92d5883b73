import logging

import pytest

from admitgroup.config.config import settings
from admitgroup.config.logger import logger, resolve_level, setup_logger


def test_explicit_level_wins():
    assert resolve_level("warning", env="dev") == logging.WARNING
    assert resolve_level("ERROR", env="prod") == logging.ERROR


@pytest.mark.parametrize("env, expected", [("dev", logging.DEBUG), ("prod", logging.INFO)])
def test_level_follows_env_without_log_level(env, expected, monkeypatch):
    monkeypatch.setattr(settings, "log_level", None)
    assert resolve_level(env=env) == expected


def test_unknown_level_is_rejected():
    with pytest.raises(ValueError):
        resolve_level("chatty")


def test_setup_is_repeatable():
    name = "admitgroup.tests.setup"
    first = setup_logger(name, level=logging.INFO)
    second = setup_logger(name, level=logging.WARNING)

    assert first is second
    assert len(second.handlers) == 1
    assert second.level == logging.WARNING
    assert second.handlers[0].level == logging.WARNING


def test_project_logger_has_one_stdout_handler():
    assert logger.name == "admitgroup"
    assert len(logger.handlers) == 1
