"""Structured logging for the connector.

Application code logs through structlog. Records from libraries that use the
standard ``logging`` module (aiohttp, SQLAlchemy) are rendered by the same
processor chain, so every line of output has one format.
"""

import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import List, Optional

import colorlog
import structlog
from colorlog.escape_codes import parse_colors
from structlog.typing import Processor

from ..config.settings import get_settings


HANDLER_MARKER = "_sync_connector"

LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def _shared_processors() -> List[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(format_type: str) -> Processor:
    if format_type == "json":
        return structlog.processors.JSONRenderer()
    # Colour is applied per line by LevelColorFormatter
    return structlog.dev.ConsoleRenderer(colors=False)


def _formatter(format_type: str) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(format_type),
        ],
    )


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Configure structlog and the root logger.

    Safe to call repeatedly; handlers installed by a previous call are
    replaced rather than duplicated.
    """
    settings = get_settings()

    level = (log_level or settings.logging.level).upper()
    format_type = log_format or settings.logging.format
    file_path = log_file or settings.logging.file_path

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level))

    for handler in list(root_logger.handlers):
        if getattr(handler, HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.addHandler(_console_handler(level, format_type))
    if file_path:
        root_logger.addHandler(_file_handler(file_path, level))


def _console_handler(level: str, format_type: str) -> logging.Handler:
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if format_type == "json":
        handler.setFormatter(_formatter(format_type))
    else:
        handler.setFormatter(LevelColorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(format_type),
            ],
        ))

    setattr(handler, HANDLER_MARKER, True)
    return handler


def _file_handler(file_path: str, level: str) -> logging.Handler:
    """Rotating JSON log file."""
    Path(file_path).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        file_path,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5
    )
    handler.setLevel(level)
    handler.setFormatter(_formatter("json"))

    setattr(handler, HANDLER_MARKER, True)
    return handler


class LevelColorFormatter(structlog.stdlib.ProcessorFormatter):
    """Console formatter that tints each rendered line by its level."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LOG_COLORS.get(record.levelname)
        if not color:
            return message
        return f"{parse_colors(color)}{message}{parse_colors('reset')}"


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(**values):
    """Attach values to every log line emitted in the current task.

    Usable as a context manager; the values are removed on exit.
    """
    return structlog.contextvars.bound_contextvars(**values)


def log_async_execution_time(func):
    """Log how long a coroutine took, and whether it raised."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        logger = get_logger(func.__module__)
        start_time = time.perf_counter()

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            logger.error(
                "Async function execution failed",
                function=func.__qualname__,
                execution_time=f"{time.perf_counter() - start_time:.4f}s",
                error=str(e)
            )
            raise
        finally:
            logger.debug(
                "Async function finished",
                function=func.__qualname__,
                execution_time=f"{time.perf_counter() - start_time:.4f}s"
            )

    return wrapper
