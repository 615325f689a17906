"""
Logging Configuration Module.

Sets up the root logger for Toolgate-AI from ``toolgate_ai.core.config``:

- one console handler at the configured level,
- optionally a DEBUG file handler in ``TOOLGATE_AI_LOG_DIR``,
- fixed levels for our own packages and for chatty third-party libraries.

``setup_logging`` runs once on import and may be called again to reconfigure.
"""

import logging
from pathlib import Path
from typing import List, Optional

from toolgate_ai.core.config import settings

LOG_LEVEL = settings.log_level.upper()
LOG_FORMAT = settings.log_format
LOG_FILE_DIR = settings.log_file_dir
ENABLE_FILE_LOGGING = settings.enable_file_logging
LOG_FILE_NAME = "toolgate_ai.log"


SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s"

JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", '
    '"line": %(lineno)d, "message": "%(message)s"}'
)

LOG_FORMATS = {"simple": SIMPLE_FORMAT, "detailed": DETAILED_FORMAT, "json": JSON_FORMAT}


MODULE_LOG_LEVELS = {
    # The queue, agent and runner explain every message they route at DEBUG
    "toolgate_ai.agent_core.runtime": "DEBUG",
    "toolgate_ai.agent_core.capabilities": "DEBUG",
    "toolgate_ai.agent_core.abstraction": "DEBUG",
    "toolgate_ai.agent_core.repos": "INFO",
    # Third-party libraries
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "aiosqlite": "WARNING",
    "asyncpg": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
    "openai": "WARNING",
    "anthropic": "WARNING",
    "asyncio": "WARNING",
}


def _handlers(level: str, formatter: logging.Formatter, to_file: bool) -> List[logging.Handler]:
    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    handlers: List[logging.Handler] = [console]

    if to_file:
        log_dir = Path(LOG_FILE_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)
    return handlers


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    enable_file: Optional[bool] = None,
) -> None:
    """
    Configure the root logger.

    Existing root handlers are replaced, so calling this twice never
    duplicates output.

    Args:
        log_level: Console level; defaults to ``TOOLGATE_AI_LOG_LEVEL``.
        log_format: ``simple``, ``detailed`` or ``json``; unknown names fall back to ``detailed``.
        enable_file: Also log to ``<LOG_FILE_DIR>/toolgate_ai.log``; defaults to
            ``TOOLGATE_AI_ENABLE_FILE_LOGGING``.
    """
    level = (log_level or LOG_LEVEL).upper()
    fmt = log_format or LOG_FORMAT
    to_file = ENABLE_FILE_LOGGING if enable_file is None else enable_file
    formatter = logging.Formatter(LOG_FORMATS.get(fmt, DETAILED_FORMAT), datefmt="%Y-%m-%d %H:%M:%S")

    root = logging.getLogger()
    # Handlers filter by level; the root passes everything through.
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in _handlers(level, formatter, to_file):
        root.addHandler(handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root.debug(f"Logging configured: level={level}, format={fmt}, file_logging={to_file}")


def get_logger(name: str) -> logging.Logger:
    """Return the logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)


setup_logging()
