"""Logging configuration for pairline.

Every line carries the component that wrote it, taken from the second part
of the logger name (``pairline.link.tracker`` logs as ``link``). The link
client is the chattiest component, so its level can be set on its own with
``link_log_level``.
"""

import logging
from pathlib import Path

from pairline.config import Config

ROOT_LOGGER = "pairline"
LINK_LOGGER = "pairline.link"

# 2026-01-27 10:30:45 [INFO] link: message
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(component)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_logger: logging.Logger | None = None


class ComponentFilter(logging.Filter):
    """Set ``record.component`` from the logger name."""

    def filter(self, record: logging.LogRecord) -> bool:
        parts = record.name.split(".")
        if parts[0] == ROOT_LOGGER and len(parts) > 1:
            record.component = parts[1]
        else:
            record.component = parts[0]
        return True


def _parse_level(name: str | None, default: int) -> int:
    if not name:
        return default
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def _handlers(config: Config) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ComponentFilter())
    return handlers


def setup_logging(config: Config) -> logging.Logger:
    """Set up the ``pairline`` logger from configuration.

    Safe to call more than once; later calls return the configured logger.

    Args:
        config: Configuration object with ``log_level``, ``log_file`` and
            ``link_log_level``.

    Returns:
        Configured logger instance.
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(_parse_level(config.log_level, logging.INFO))
    logger.handlers.clear()
    for handler in _handlers(config):
        logger.addHandler(handler)
    logger.propagate = False

    # NOTSET defers to the pairline level
    logging.getLogger(LINK_LOGGER).setLevel(
        _parse_level(config.link_log_level, logging.NOTSET)
    )

    _logger = logger
    return logger


def reset_logging() -> None:
    """Reset logging state. Used for testing."""
    global _logger
    if _logger is not None:
        for handler in _logger.handlers:
            handler.close()
        _logger.handlers.clear()
        _logger.propagate = True
        logging.getLogger(LINK_LOGGER).setLevel(logging.NOTSET)
        _logger = None
