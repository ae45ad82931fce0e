"""Tests for syslog2 logging utilities."""
import logging

import pytest
from src.core.syslog2 import *
from src.core.syslog2 import _format_body, _get_caller_info


@pytest.fixture(autouse=True)
def reset_log():
    yield
    close_log()
    setup_log(LOG_DEBUG)


def test_setup_log():
    setup_log(LOG_DEBUG)
    setup_log(LOG_INFO)


def test_syslog2_filtering(caplog):
    setup_log(LOG_WARNING)
    syslog2(LOG_DEBUG, "debug message")
    syslog2(LOG_WARNING, "warning message")
    assert "warning message" in caplog.text
    assert "debug message" not in caplog.text


def test_format_body():
    assert _format_body("msg", {}) == "msg"
    assert _format_body("msg", {"line": 3}) == "msg line=3"
    assert _format_body("msg", {"text": "a\nb"}) == "msg text=\na\nb"


def test_get_caller_info():
    file, line, func = _get_caller_info()
    assert isinstance(file, str)
    assert isinstance(line, int)


def test_file_handler_writes_and_flushes(tmp_path):
    log_file = tmp_path / "err.log"
    setup_log(LOG_INFO, log_file=str(log_file))
    syslog2(LOG_ERR, "Error getting embedding", line=7)
    flush_log()

    content = log_file.read_text()
    assert "ERR:" in content
    assert "error getting embedding line=7" in content


def test_setup_log_replaces_file_handler(tmp_path):
    first = tmp_path / "first.log"
    second = tmp_path / "second.log"
    setup_log(LOG_INFO, log_file=str(first))
    setup_log(LOG_INFO, log_file=str(second))
    syslog2(LOG_NOTICE, "only in second")
    flush_log()

    assert "only in second" not in first.read_text()
    assert "only in second" in second.read_text()
    file_handlers = [h for h in log.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1


def test_setup_log_unwritable_file(tmp_path):
    with pytest.raises(OSError):
        setup_log(LOG_INFO, log_file=str(tmp_path / "missing" / "err.log"))


@pytest.mark.parametrize("value,expected", [
    ("LOG_INFO", LOG_INFO),
    ("debug", LOG_DEBUG),
    ("3", LOG_ERR),
    (5, LOG_NOTICE),
])
def test_parse_log_level(value, expected):
    assert parse_log_level(value) == expected


def test_parse_log_level_invalid():
    with pytest.raises(ValueError):
        parse_log_level("loud")
    with pytest.raises(ValueError):
        parse_log_level("9")
