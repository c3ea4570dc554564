"""
Centralized logging configuration for motionflow.

Module loggers are plain ``logging`` loggers named after the module; the
API configures the root logger once at startup from ``AppConfig.log_level``.
"""
import logging
import sys
from pathlib import Path
from typing import Iterable, Optional


_loggers = {}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP clients and SDKs that log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "urllib3", "primp", "langfuse")


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    format_string: str = LOG_FORMAT,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Configure the root logger for the application.

    Args:
        level: Logging level (default: INFO)
        log_file: Optional path to an additional log file
        format_string: Log message format
        quiet: Third-party loggers capped at WARNING unless ``level`` is DEBUG
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True
    )

    third_party_level = level if level <= logging.DEBUG else max(level, logging.WARNING)
    for name in quiet:
        logging.getLogger(name).setLevel(third_party_level)


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """Translate a level name such as "debug" from settings into a logging level."""
    if not name:
        return default
    level = getattr(logging, name.strip().upper(), None)
    return level if isinstance(level, int) else default


def get_logger(name: str) -> logging.Logger:
    """Module logger; cached so repeated lookups return the same instance."""
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]
