import logging
import os
from collections import OrderedDict
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

from taskledger.core.utils import ifnone

DEFAULT_LOG_DIR = os.path.join("~", ".cache", "taskledger", "logs")


def default_formatter(fmt: Optional[str] = None) -> logging.Formatter:
    """Returns a logging formatter with a default format if none is specified."""
    default_fmt = "[%(asctime)s] %(levelname)s: %(name)s: %(message)s"
    return logging.Formatter(fmt or default_fmt)


def setup_logger(
    name: str = "taskledger",
    *,
    log_dir: Optional[str | Path] = None,
    logger_level: int = logging.DEBUG,
    stream_level: int = logging.ERROR,
    add_stream_handler: bool = True,
    file_level: int = logging.DEBUG,
    file_mode: str = "a",
    add_file_handler: bool = True,
    propagate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_structlog: bool = False,
    structlog_json: bool = True,
    structlog_bind: Optional[dict] = None,
) -> Logger | structlog.stdlib.BoundLogger:
    """Configure and initialize logging for TaskLedger components.

    Sets up a rotating file handler and a console handler on the given logger. The log file defaults to
    ``~/.cache/taskledger/logs/{name}.log``.

    Args:
        name: Logger name, defaults to "taskledger".
        log_dir: Custom directory for the log file.
        logger_level: Overall logger level.
        stream_level: StreamHandler level (e.g., ERROR).
        add_stream_handler: Whether to add a stream handler.
        file_level: FileHandler level (e.g., DEBUG).
        file_mode: Mode for file handler, default is 'a' (append).
        add_file_handler: Whether to add a file handler.
        propagate: Whether the logger should propagate messages to ancestor loggers.
        max_bytes: Maximum size in bytes before rotating log file.
        backup_count: Number of backup files to retain.
        use_structlog: If True, configure and return a structlog BoundLogger.
        structlog_json: If True, render JSON; otherwise use the console/dev renderer.
        structlog_bind: Fields bound to every event of the returned structlog logger.

    Returns:
        Logger | structlog.stdlib.BoundLogger: Configured logger instance.
    """
    stdlib_logger = logging.getLogger(name)
    stdlib_logger.handlers.clear()
    stdlib_logger.setLevel(logger_level)
    stdlib_logger.propagate = propagate

    log_dir = os.path.expanduser(str(ifnone(log_dir, DEFAULT_LOG_DIR)))
    log_file_path = os.path.join(log_dir, f"{name}.log")

    # structlog renders the whole line itself
    formatter = logging.Formatter("%(message)s") if use_structlog else default_formatter()

    if add_stream_handler:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(stream_level)
        stream_handler.setFormatter(formatter)
        stdlib_logger.addHandler(stream_handler)

    if add_file_handler:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file_path, maxBytes=max_bytes, backupCount=backup_count, mode=file_mode
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        stdlib_logger.addHandler(file_handler)

    if not use_structlog:
        return stdlib_logger

    renderer = structlog.processors.JSONRenderer() if structlog_json else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _enforce_key_order_processor(
                ["timestamp", "event", "service", "method", "path", "status_code", "duration_ms", "level", "logger"]
            ),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    bound_logger = structlog.get_logger(name)
    if structlog_bind:
        bound_logger = bound_logger.bind(**structlog_bind)
    return bound_logger


def _enforce_key_order_processor(key_order: list[str]):
    def _processor(_logger, _method_name, event_dict):
        ordered = OrderedDict()
        for key in key_order:
            if key in event_dict:
                ordered[key] = event_dict.pop(key)
        for k in sorted(event_dict.keys()):
            ordered[k] = event_dict[k]
        return ordered

    return _processor


def get_logger(name: str | None = "taskledger", **kwargs) -> Logger | structlog.stdlib.BoundLogger:
    """Create or retrieve a named logger under the ``taskledger`` hierarchy.

    Child loggers propagate to the parent by default so a single handler set on ``taskledger`` collects every module.

    Example:
        .. code-block:: python

            from taskledger.core.logging import get_logger

            logger = get_logger("repositories.user", add_file_handler=False)
            logger.info("User created")
    """
    if not name:
        name = "taskledger"
    full_name = name if name.startswith("taskledger") else f"taskledger.{name}"
    kwargs.setdefault("propagate", True)
    kwargs.setdefault("add_stream_handler", not kwargs["propagate"])
    return setup_logger(full_name, **kwargs)
