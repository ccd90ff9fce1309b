"""
Logging configuration for the WiFi keeper service.

Every module logs under the ``wifikeeper`` tree through
``logging.getLogger(__name__)``. The tree has one branch per component:
``wifikeeper.wifi`` (netsh calls and output parsing),
``wifikeeper.connection`` (state machine, notifications, poller),
``wifikeeper.settings`` (web UI) and ``wifikeeper.service`` (entry point).
Handlers sit on the root of the tree; components can be turned up or down
on their own, e.g. ``{"wifi": "DEBUG"}`` to trace raw netsh traffic.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional

ROOT_LOGGER_NAME = "wifikeeper"
COMPONENTS = ("wifi", "connection", "settings", "service")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024  # 10MB
LOG_FILE_BACKUPS = 5


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _file_handler(log_file: str) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS
    )


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    console_output: bool = True,
    component_levels: Optional[Dict[str, str]] = None
) -> logging.Logger:
    """
    Configure the ``wifikeeper`` logger tree.

    Args:
        log_level: Default level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path of a rotating log file
        console_output: Whether to also log to stderr
        component_levels: Per-component overrides, keyed by component name

    Returns:
        The root ``wifikeeper`` logger

    Raises:
        ValueError: If a component override names an unknown component
    """
    root_level = _level(log_level)
    overrides = {
        component: _level(level)
        for component, level in (component_levels or {}).items()
    }
    unknown = set(overrides) - set(COMPONENTS)
    if unknown:
        raise ValueError(
            f"Unknown logging component(s): {', '.join(sorted(unknown))}")

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    # The root passes everything its components let through
    logger.setLevel(min([root_level, *overrides.values()]))

    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()

    handlers = []
    if console_output:
        handlers.append(logging.StreamHandler(sys.stderr))
    if log_file:
        handlers.append(_file_handler(log_file))

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    for component in COMPONENTS:
        get_logger(component).setLevel(overrides.get(component, root_level))

    return logger


def parse_component_levels(specs) -> Dict[str, str]:
    """
    Parse ``component=LEVEL`` strings from the command line.

    Raises:
        ValueError: If an entry has no ``=``
    """
    levels = {}
    for spec in specs or ():
        component, sep, level = spec.partition("=")
        if not sep or not component.strip() or not level.strip():
            raise ValueError(f"Expected component=LEVEL, got {spec!r}")
        levels[component.strip()] = level.strip()
    return levels


def get_logger(name: str) -> logging.Logger:
    """
    Get the logger for a component or module below ``wifikeeper``.

    Args:
        name: Component name, e.g. "service" or "connection.poller"

    Returns:
        Logger instance
    """
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
