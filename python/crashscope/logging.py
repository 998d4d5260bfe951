"""
Structured logging for crashscope.

The analyzer is a library first, so file output is opt-in. When enabled,
entries are written as JSONL (one JSON object per line) to a rotating file.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog

from crashscope.config import get_config

if TYPE_CHECKING:
    from structlog.types import Processor

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "crashscope.jsonl"
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MB
DEFAULT_BACKUP_COUNT = 3

SERVICE_NAME = "crashscope"


def _add_service_info(
    _logger: logging.Logger, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict["service"] = SERVICE_NAME
    event_dict["pid"] = os.getpid()
    return event_dict


def _add_timestamp_utc(
    _logger: logging.Logger, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _format_exception(
    _logger: logging.Logger, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Render exceptions as a small dict instead of a multiline traceback."""
    exc_info = event_dict.pop("exception", None)
    if exc_info:
        event_dict["exception"] = {
            "type": type(exc_info).__name__,
            "message": str(exc_info),
        }
    return event_dict


def _rotating_jsonl_handler(path: Path, max_bytes: int, backup_count: int) -> RotatingFileHandler:
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )


def setup_logging(
    level: str | None = None,
    format: str | None = None,
    log_file: str | None = None,
    log_dir: str | None = None,
    max_bytes: int | None = None,
    backup_count: int | None = None,
    enable_console: bool = True,
    enable_file: bool = False,
) -> None:
    """
    Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to config value.
        format: Console format (json, plain). Defaults to config value.
        log_file: Log filename. Defaults to the config file setting, then crashscope.jsonl.
        log_dir: Directory for log files. Defaults to ./logs.
        max_bytes: Maximum size per log file before rotation.
        backup_count: Number of rotated files to keep.
        enable_console: Whether to log to stdout.
        enable_file: Whether to log to a rotating JSONL file.
    """
    config = get_config()

    level = level or config.logging.level
    format = format or config.logging.format
    log_file = log_file or config.logging.file or DEFAULT_LOG_FILE
    log_dir = log_dir or DEFAULT_LOG_DIR

    log_level = getattr(logging, level.upper(), logging.INFO)

    jsonl_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_timestamp_utc,
        _add_service_info,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        _format_exception,
        structlog.processors.UnicodeDecoder(),
    ]

    console_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *jsonl_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []

    if enable_file:
        file_handler = _rotating_jsonl_handler(
            Path(log_dir) / log_file,
            max_bytes or DEFAULT_MAX_BYTES,
            backup_count or DEFAULT_BACKUP_COUNT,
        )
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=jsonl_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
            )
        )
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    if enable_console:
        if format.lower() == "json":
            console_renderer: Processor = structlog.processors.JSONRenderer()
        else:
            console_renderer = structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            )

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=console_processors,
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    console_renderer,
                ],
            )
        )
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers = handlers
    root_logger.setLevel(log_level)


class _LibraryLogger:
    """
    Logger proxy that stays quiet below INFO until structlog is configured.

    Hosts that never call ``setup_logging`` (or ``structlog.configure``)
    would otherwise get every debug event printed by structlog defaults.
    """

    def __init__(self, name: str | None) -> None:
        self._name = name

    def __getattr__(self, method: str) -> Any:
        if structlog.is_configured():
            return getattr(structlog.get_logger(self._name), method)
        return getattr(_UNCONFIGURED, method)


_UNCONFIGURED = structlog.wrap_logger(None, wrapper_class=structlog.make_filtering_bound_logger(logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Debug events are dropped until logging has been configured.

    Example:
        logger = get_logger(__name__)
        logger.debug("log_analysis_completed", total_lines=1200)
    """
    return _LibraryLogger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables (e.g. instance id) to subsequent log entries."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def with_context(**kwargs: Any) -> Iterator[None]:
    """
    Context manager for temporary context binding.

    Example:
        with with_context(instance="all-the-mods-9"):
            result = analyze_log_text(text)
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


def get_log_file_path(log_dir: str | None = None, log_file: str | None = None) -> Path:
    """Get the full path to the current log file."""
    return Path(log_dir or DEFAULT_LOG_DIR) / (log_file or DEFAULT_LOG_FILE)
