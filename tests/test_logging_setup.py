import io
import logging

import pytest

from smb_pulse.logging_setup import configure_logging, get_logger, resolve_level


@pytest.fixture
def pkg_logger(monkeypatch):
    """Package logger with no handlers, restored afterwards."""
    logger = logging.getLogger("smb_pulse")
    original_level = logger.level
    monkeypatch.setattr(logger, "handlers", [])
    monkeypatch.setattr(logger, "propagate", True)
    logger.setLevel(logging.NOTSET)
    yield logger
    logger.setLevel(original_level)


def test_get_logger_stays_in_package_hierarchy() -> None:
    assert get_logger("smb_pulse.fetcher").name == "smb_pulse.fetcher"
    assert get_logger("fetcher").name == "smb_pulse.fetcher"
    assert get_logger("smb_pulse").name == "smb_pulse"


def test_configure_logging_writes_to_stream(pkg_logger) -> None:
    stream = io.StringIO()

    configure_logging("DEBUG", fmt="%(levelname)s %(message)s", stream=stream)
    get_logger("smb_pulse.grouping").debug("hello %s", "pulse")

    assert stream.getvalue() == "DEBUG hello pulse\n"
    assert pkg_logger.propagate is False


def test_configure_logging_twice_updates_the_same_handler(pkg_logger) -> None:
    stream = io.StringIO()

    first = configure_logging("WARNING", stream=stream)
    second = configure_logging("DEBUG", fmt="%(message)s")
    get_logger("smb_pulse.fetcher").debug("again")

    assert first is second
    assert len(pkg_logger.handlers) == 1
    assert pkg_logger.level == logging.DEBUG
    assert stream.getvalue() == "again\n"


def test_level_from_environment(pkg_logger, monkeypatch) -> None:
    monkeypatch.setenv("SMB_PULSE_LOG_LEVEL", "warning")

    configure_logging(stream=io.StringIO())

    assert pkg_logger.level == logging.WARNING


@pytest.mark.parametrize(
    "level,expected",
    [
        ("debug", logging.DEBUG),
        (" Error ", logging.ERROR),
        ("10", logging.DEBUG),
        (logging.CRITICAL, logging.CRITICAL),
        ("LOUD", logging.INFO),
    ],
)
def test_resolve_level(level, expected) -> None:
    assert resolve_level(level) == expected


def test_resolve_level_defaults_to_info(monkeypatch) -> None:
    monkeypatch.delenv("SMB_PULSE_LOG_LEVEL", raising=False)
    assert resolve_level() == logging.INFO
