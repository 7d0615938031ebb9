"""Structured logging for the hot list service (structlog over stdlib logging)."""

import sys
import structlog
import logging
from pathlib import Path
from typing import Any, List, Optional, Tuple
from core.config import Settings

# Third-party loggers that are chatty at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _build_handlers(settings: Settings, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def _renderer_chain(log_format: str) -> Tuple[List[Any], Any]:
    if log_format == "json":
        return [
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
        ], structlog.processors.JSONRenderer(ensure_ascii=False)

    return [
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
    ], structlog.dev.ConsoleRenderer(
        colors=False,
        pad_event=35,
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(settings: Settings) -> None:
    """Configure stdlib handlers and the structlog processor chain.

    ``LOG_FORMAT=json`` emits one JSON object per line (UTC timestamps, logger
    name); ``console`` emits padded human-readable lines. ``LOG_FILE`` adds a
    file handler next to stdout.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        handlers=_build_handlers(settings, level),
        format="%(message)s",
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    leading, renderer = _renderer_chain(settings.log_format)
    structlog.configure(
        processors=[
            *leading,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def log_execution_time(logger: structlog.BoundLogger, operation: str,
                       start_time: float, end_time: float, **kwargs) -> None:
    """Log how long an operation (upstream fetch, route render) took."""
    logger.info(
        "Operation completed",
        operation=operation,
        execution_time_seconds=round(end_time - start_time, 4),
        **kwargs
    )


def log_upstream_request(logger: structlog.BoundLogger, method: str, url: str,
                         status_code: Optional[int], elapsed: float, **kwargs) -> None:
    """Log one completed upstream HTTP exchange."""
    logger.info(
        "Upstream request",
        method=method,
        url=url,
        status_code=status_code,
        elapsed_ms=round(elapsed * 1000, 1),
        **kwargs
    )


def log_cache_operation(logger: structlog.BoundLogger, operation: str,
                        key: str, hit: Optional[bool] = None,
                        tier: Optional[str] = None, **kwargs) -> None:
    """Log cache lookups, writes, evictions and coalesced waits at DEBUG."""
    log_data = {
        "operation": operation,
        "cache_key": key,
        **kwargs
    }
    if hit is not None:
        log_data["cache_hit"] = hit
    if tier is not None:
        log_data["tier"] = tier

    logger.debug("Cache operation", **log_data)
