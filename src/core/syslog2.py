# src/core/syslog2.py

import logging
import inspect
from datetime import datetime
from typing import Optional, Union


"""global Syslog-like log levels: 1 = highest severity, 7 = lowest"""
LOG_ALERT   = 1
LOG_CRIT    = 2
LOG_ERR     = 3
LOG_WARNING = 4
LOG_NOTICE  = 5
LOG_INFO    = 6
LOG_DEBUG   = 7

_LEVEL_NAMES = {
    "ALERT": LOG_ALERT,
    "CRIT": LOG_CRIT,
    "ERR": LOG_ERR,
    "WARNING": LOG_WARNING,
    "NOTICE": LOG_NOTICE,
    "INFO": LOG_INFO,
    "DEBUG": LOG_DEBUG,
}

# map 1..7 -> unique python logging levels (higher = more severe)
# 1 -> 70, 2 -> 60, 3 -> 50, 4 -> 40, 5 -> 30, 6 -> 20, 7 -> 10
def _sys_to_py(level: int) -> int:
    return 80 - level * 10

_current_syslog_level = LOG_DEBUG
_file_handler: Optional[logging.FileHandler] = None
log = logging.getLogger("app")


def setup_log(syslog_level: int = LOG_DEBUG, log_file: Optional[str] = None) -> None:
    """
    Init backend and register custom levels.

    When log_file is given, one append-mode file handler is attached to the
    app logger (replacing a previous one). Opening errors propagate.
    """
    global _current_syslog_level, _file_handler
    _current_syslog_level = syslog_level

    logging.basicConfig(level=logging.DEBUG, format="%(message)s")

    for name, level in _LEVEL_NAMES.items():
        logging.addLevelName(_sys_to_py(level), name)

    if log_file is None:
        return

    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    if _file_handler is not None:
        log.removeHandler(_file_handler)
        _file_handler.close()
    log.addHandler(handler)
    _file_handler = handler


def close_log() -> None:
    """detach and close the file handler installed by setup_log"""
    global _file_handler
    if _file_handler is not None:
        log.removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None


def flush_log() -> None:
    """flush every handler that app records can reach"""
    logger: Optional[logging.Logger] = log
    while logger is not None:
        for handler in logger.handlers:
            handler.flush()
        if not logger.propagate:
            break
        logger = logger.parent


def parse_log_level(value: Union[str, int]) -> int:
    """
    Accept 1..7, "LOG_INFO", "info" and friends.

    Raises:
        ValueError: unknown level
    """
    if isinstance(value, int):
        level = value
    else:
        text = str(value).strip().upper()
        if text.isdigit():
            level = int(text)
        else:
            if text.startswith("LOG_"):
                text = text[4:]
            if text not in _LEVEL_NAMES:
                raise ValueError(f"unknown log level: {value}")
            level = _LEVEL_NAMES[text]
    if not LOG_ALERT <= level <= LOG_DEBUG:
        raise ValueError(f"log level out of range: {value}")
    return level


def _format_body(msg: str, params: dict) -> str:
    parts = [msg]
    for k, v in params.items():
        if isinstance(v, str) and '\n' in v:
            # multiline value starts on its own line
            parts.append(f"{k}=\n{v}")
        else:
            parts.append(f"{k}={repr(v)}")
    return " ".join(parts)


def _get_caller_info():
    frame = inspect.currentframe()
    # frame.f_back is syslog2, frame.f_back.f_back is the actual caller
    try:
        caller = frame.f_back.f_back
    except AttributeError:
        caller = None

    if not caller:
        return "unknown", 0, "unknown"
    file_name = caller.f_code.co_filename.rsplit("/", 1)[-1]
    line_no = caller.f_lineno
    func_name = caller.f_code.co_name
    return file_name, line_no, func_name


def syslog2(level: int, msg: str, **params) -> None:
    # filter by configured 1..7 level
    if level > _current_syslog_level:
        return

    py_level = _sys_to_py(level)
    file_name, line_no, func_name = _get_caller_info()
    ts = datetime.now().strftime("%d.%m.%y %H:%M:%S.%f")[:-3]

    if msg:
        first = msg[0]
        if first.isalpha():
            msg = first.lower() + msg[1:]

    prefix = f"{ts} {file_name}:{line_no} {func_name}:"
    full_body = _format_body(msg, params)

    lines = full_body.split('\n')

    if len(lines) == 1:
        log.log(py_level, f"{prefix} {full_body}")
    else:
        # first line with prefix, subsequent lines indented under it
        log.log(py_level, f"{prefix} {lines[0]}")
        indent = " " * len(prefix)
        for line in lines[1:]:
            log.log(py_level, f"{indent} {line}")
