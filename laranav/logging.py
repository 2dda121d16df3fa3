"""
Logging — Component loggers and sink configuration

Every module logs through ``logging.getLogger(__name__)`` under the
``laranav`` hierarchy. The package installs a NullHandler, so a host that
never configures a sink sees no output and no behavior change.

Usage:
    from laranav.logging import configure_logging

    configure_logging("DEBUG")                     # plain text on stderr
    configure_logging("INFO", json_output=True)    # one JSON object per line

Structured context travels through ``extra=``:

    logger.info("Route file parsed", extra={"file": "api.php", "routes": 12})
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

from pythonjsonlogger.json import JsonFormatter


ROOT_LOGGER = "laranav"

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Handlers we attached, so reconfiguration replaces them instead of stacking
_installed_handlers = []


def _make_formatter(json_output: bool) -> logging.Formatter:
    if json_output:
        return JsonFormatter(JSON_FORMAT, datefmt=DATE_FORMAT)
    return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)


def configure_logging(
    level: str = "WARNING",
    json_output: bool = False,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Attach a sink to the ``laranav`` logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_output: Emit JSON lines (python-json-logger) instead of text
        log_file: Optional file that receives the same records

    Returns:
        The configured package logger
    """
    level_name = level.upper()
    if level_name not in VALID_LEVELS:
        raise ValueError(f"Unknown log level '{level}'. Valid: {', '.join(VALID_LEVELS)}")

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level_name))

    for handler in _installed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    formatter = _make_formatter(json_output)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)

    return logger


def reset_logging() -> None:
    """Detach every handler installed by configure_logging()."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in _installed_handlers:
        logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()
    logger.setLevel(logging.NOTSET)
