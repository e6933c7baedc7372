import io
import json
import logging
import time

import pytest

from jkcli import logsetup


@pytest.mark.parametrize(
    "name, expected",
    [
        ("trace", logsetup.TRACE),
        ("debug", logging.DEBUG),
        ("DEBUG", logging.DEBUG),
        ("info", logging.INFO),
        ("warn", logging.WARNING),
        ("warning", logging.WARNING),
        ("error", logging.ERROR),
        ("bogus", logging.INFO),
    ],
)
def test_parse_level(name, expected):
    assert logsetup.parse_level(name) == expected


def test_parse_level_empty_uses_environment(monkeypatch):
    monkeypatch.setenv("JK_LOG", "error")
    assert logsetup.parse_level("") == logging.ERROR


def test_parse_level_empty_without_environment(monkeypatch):
    monkeypatch.delenv("JK_LOG", raising=False)
    assert logsetup.parse_level("") == logging.INFO


def test_get_logger_is_stable():
    first = logsetup.get_logger()
    assert logsetup.get_logger() is first
    assert first.name == logsetup.LOGGER_NAME
    assert len(first.handlers) == 1


def test_configure_applies_only_once():
    logger = logsetup.get_logger()
    level_before = logger.level
    handlers_before = list(logger.handlers)
    again = logsetup.configure("trace", io.StringIO())
    assert again is logger
    assert logger.level == level_before
    assert logger.handlers == handlers_before


def test_json_formatter_output():
    record = logging.LogRecord("jk", logging.WARNING, "file.py", 12, "hello %s", ("world",), None)
    before = int(time.time() * 1000) - 5000
    entry = json.loads(logsetup._JsonFormatter().format(record))
    assert entry["level"] == "warn"
    assert entry["message"] == "hello world"
    assert entry["caller"].endswith(":12")
    assert before <= entry["ts"] <= int(time.time() * 1000)