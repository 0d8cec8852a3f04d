"""
================================================================================
Global Logging Configuration for Salesflow Tools
================================================================================

Centralized Loguru logging setup.

Features:
    - stderr sink plus optional rotating, compressed file sink
    - Settings read from the suite's configuration source (`logging.level`,
      `logging.format`, `logging.file`, `logging.rotation`, `logging.retention`),
      so the usual dotted-path env override applies (LOGGING_LEVEL=DEBUG)
    - Per-test identity fields on every record

Every log record carries `extra[test_id]` and `extra[test_name]`. They default
to "-" and are filled in by a TestExecutionContext for the duration of a test.

Author: Automation Team
License: MIT
================================================================================
"""

import sys
from pathlib import Path
from typing import Any, Optional

from loguru import logger

_logger_initialized: bool = False

LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[test_id]} {extra[test_name]} | "
    "{name}:{function}:{line} | {message}"
)

IDENTITY_DEFAULTS = {"test_id": "-", "test_name": "-"}

LOGGING_DEFAULTS = {
    "logging.level": "INFO",
    "logging.format": LOG_FORMAT,
    "logging.file": None,
    "logging.rotation": "10 MB",
    "logging.retention": "7 days",
}


def _setting(config: Any, key: str) -> Any:
    default = LOGGING_DEFAULTS[key]
    if config is None:
        return default
    return config.get(key, default)


def init_logger(
    config: Any = None,
    level: Optional[str] = None,
    format_str: Optional[str] = None,
    sink: Any = None,
    force: bool = False,
) -> None:
    """
    Initializes the global Loguru logger with consistent configuration.

    Safe to call more than once; only the first call configures sinks unless
    `force` is set.

    Args:
        config: Configuration source with `get(key, default)`, normally the
            suite's ConfigLoader. Built-in defaults are used when omitted.
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        format_str: Custom log format string. Defaults to config value.
        sink: Console sink; stderr when omitted
        force: Reconfigure even if already initialized
    """
    global _logger_initialized

    if _logger_initialized and not force:
        return

    log_level = str(level or _setting(config, "logging.level")).upper()
    log_format = format_str or _setting(config, "logging.format")

    console = sys.stderr if sink is None else sink

    logger.remove()
    logger.configure(extra=dict(IDENTITY_DEFAULTS))
    logger.add(
        console,
        level=log_level,
        format=log_format,
        colorize=sink is None,
        backtrace=True,
        diagnose=False,
        enqueue=True,
    )

    # Optional: file logging
    log_file = _setting(config, "logging.file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=log_level,
            format=log_format.replace("{level: <8}", "{level}"),
            rotation=_setting(config, "logging.rotation"),
            retention=_setting(config, "logging.retention"),
            compression="zip",
            enqueue=True,
        )

    _logger_initialized = True
    logger.debug(f"Logger initialized with level: {log_level}")
