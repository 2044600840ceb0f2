"""Test the rotating file and console logging setup."""

import logging
from types import SimpleNamespace

import pytest

from catalog_hub.logging_setup import LOG_FILE_NAME, SERVER_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_loggers(tmp_path):
    names = ("",) + SERVER_LOGGERS
    levels = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in levels.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            ours = str(getattr(handler, "baseFilename", "")).startswith(str(tmp_path))
            if ours or handler.get_name() == "catalog_hub.console":
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)


def make_settings(tmp_path, **overrides):
    values = {"CATALOG_DATA_ROOT": tmp_path, "LOG_LEVEL": "INFO", "LOG_TO_CONSOLE": False}
    values.update(overrides)
    return SimpleNamespace(**values)


def file_handlers(logger, path):
    return [h for h in logger.handlers if getattr(h, "baseFilename", None) == str(path)]


def test_records_reach_the_log_file(tmp_path):
    path = setup_logging(make_settings(tmp_path, LOG_LEVEL="debug"))
    assert path == tmp_path / "logs" / LOG_FILE_NAME

    logging.getLogger("catalog_hub.services.merge").debug("recomputed merged 7")
    assert "recomputed merged 7" in path.read_text(encoding="utf-8")


def test_repeated_setup_does_not_duplicate_handlers(tmp_path):
    settings = make_settings(tmp_path, LOG_TO_CONSOLE=True)
    path = setup_logging(settings)
    setup_logging(settings)

    root = logging.getLogger()
    assert len(file_handlers(root, path)) == 1
    assert len([h for h in root.handlers if h.get_name() == "catalog_hub.console"]) == 1
    for name in SERVER_LOGGERS:
        assert len(file_handlers(logging.getLogger(name), path)) == 1


def test_console_is_opt_in(tmp_path):
    setup_logging(make_settings(tmp_path))
    assert not [h for h in logging.getLogger().handlers if h.get_name() == "catalog_hub.console"]


def test_unknown_level_falls_back_to_info(tmp_path):
    setup_logging(make_settings(tmp_path, LOG_LEVEL="loud"))
    assert logging.getLogger().level == logging.INFO
