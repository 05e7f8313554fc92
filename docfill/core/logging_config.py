"""Logging setup for the engine.

Two entry points:

- ``configure_structlog`` wires structlog into stdlib logging. Settings call
  it on first load.
- ``setup_logging`` is for host processes that want handlers installed: a
  console stream and, when ``log_dir`` is configured, ``info.log`` (INFO and
  above) plus ``error.log`` (ERROR only).

Neither runs on import.
"""

import logging
import sys

import structlog

from docfill.core.config import Settings, get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_structlog(log_level: str, json_logs: bool = True) -> None:
    """Route structlog events through stdlib logging.

    Args:
        log_level: Level name. Unknown names fall back to INFO.
        json_logs: JSON lines when True, key=value text otherwise.
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "event"])
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", level=_level(log_level))
    logging.getLogger("docfill").setLevel(_level(log_level))


def setup_logging(settings: Settings | None = None) -> logging.Logger:
    """Replace the root logger's handlers with the engine's.

    Args:
        settings: Source of ``log_level`` and ``log_dir``. Global settings if None.

    Returns:
        The root logger.
    """
    settings = settings or get_settings()
    level = _level(settings.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    if settings.log_dir is not None:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
        file_formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

        for filename, file_level in (("info.log", logging.INFO), ("error.log", logging.ERROR)):
            file_handler = logging.FileHandler(settings.log_dir / filename, encoding="utf-8")
            file_handler.setLevel(file_level)
            file_handler.setFormatter(file_formatter)
            root_logger.addHandler(file_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    root_logger.addHandler(console_handler)

    configure_structlog(settings.log_level, json_logs=settings.log_json)
    return root_logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Structured logger bound to ``name``, for callers that log key/value events."""
    return structlog.stdlib.get_logger(name)
