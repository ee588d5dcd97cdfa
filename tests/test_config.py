import logging

from leafscan.config import (
    DevelopmentConfig, ProductionConfig, TestingConfig, get_config,
)
from leafscan.logger_config import setup_logger


def test_get_config_follows_environment(monkeypatch):
    monkeypatch.setenv("LEAFSCAN_ENV", "production")
    assert get_config() is ProductionConfig

    monkeypatch.setenv("LEAFSCAN_ENV", "testing")
    assert get_config() is TestingConfig

    monkeypatch.setenv("LEAFSCAN_ENV", "no-such-env")
    assert get_config() is DevelopmentConfig


def test_testing_config_never_falls_back():
    assert TestingConfig.FALLBACK_ON_LOAD_FAILURE is False
    assert TestingConfig.DEBUG_PREDICTOR is False
    assert TestingConfig.CLASSIFIER_MODEL.endswith(".tflite")


def test_setup_logger_writes_file(tmp_path):
    logger = setup_logger(name="leafscan-test", log_dir=tmp_path, log_file="run.log")
    logger.info("hello")
    for handler in logger.handlers:
        handler.flush()

    assert "hello" in (tmp_path / "run.log").read_text(encoding="utf-8")
    assert len(logger.handlers) == 2

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


def test_setup_logger_console_only():
    logger = setup_logger(name="leafscan-console", console_level=logging.WARNING)

    assert len(logger.handlers) == 1
    assert logger.handlers[0].level == logging.WARNING
    logger.handlers.clear()


def test_no_environment_fallback_is_opt_in(monkeypatch):
    monkeypatch.delenv("LEAFSCAN_ENV", raising=False)

    assert get_config().FALLBACK_ON_LOAD_FAILURE is False
