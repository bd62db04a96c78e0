"""Centralized logging utilities."""

import logging
import sys
from typing import Optional, Dict, Any
from pathlib import Path

PACKAGE_LOGGER = 'vidrelay'
DEFAULT_FORMAT = '[%(asctime)s] [%(name)s] [%(levelname)s] %(message)s'

# HTTP stack loggers that flood INFO/DEBUG output with connection chatter
NOISY_LOGGERS = ('urllib3', 'requests')


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    propagate: bool = True
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Console output goes to stderr; stdout is left to command results.

    Args:
        name: Logger name ('vidrelay' configures the whole package)
        level: Logging level
        log_file: Optional file to write logs to
        format_string: Custom format string
        propagate: Whether records also reach parent handlers

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = propagate
    logger.handlers.clear()

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt='%H:%M:%S')

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Keep HTTP internals out of normal runs; --verbose lets them through.
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.DEBUG if level <= logging.DEBUG else logging.WARNING)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger under the package namespace.

    Handlers are attached once, on the package root logger, by
    setup_logger(); module loggers only propagate to it.
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + '.'):
        name = f'{PACKAGE_LOGGER}.{name}'
    return logging.getLogger(name)


class LoggerAdapter:
    """
    Adapter to make standard logger compatible with ILogger protocol.

    bind() returns a copy that prefixes every message with key=value
    context, e.g. the file id of the upload being processed.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        self._logger = logger
        self.context = dict(context or {})

    def bind(self, **context) -> 'LoggerAdapter':
        return LoggerAdapter(self._logger, {**self.context, **context})

    def _format(self, message: str) -> str:
        if not self.context:
            return message
        prefix = ' '.join(f"{key}={value}" for key, value in self.context.items())
        return f"[{prefix}] {message}"

    def debug(self, message: str, **kwargs) -> None:
        self._logger.debug(self._format(message), extra=kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._logger.info(self._format(message), extra=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._logger.warning(self._format(message), extra=kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._logger.error(self._format(message), extra=kwargs)

    def exception(self, message: str, **kwargs) -> None:
        """Log exception with traceback."""
        self._logger.exception(self._format(message), extra=kwargs)
