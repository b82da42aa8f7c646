"""
Logging configuration for setlist-sync
"""

import logging
import sys
from dataclasses import asdict, is_dataclass
from typing import Any, Optional

import structlog


def _convert_dataclasses(value: Any) -> Any:
    """Render dataclass values (regions, playback state) as plain dicts."""
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    elif isinstance(value, dict):
        return {k: _convert_dataclasses(v) for k, v in value.items()}
    elif isinstance(value, (list, tuple)):
        return type(value)(_convert_dataclasses(v) for v in value)
    return value


def dataclass_to_dict_processor(logger, method_name, event_dict):
    """Structlog processor that flattens dataclasses into dicts."""
    return {k: _convert_dataclasses(v) for k, v in event_dict.items()}


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Configure structured logging using structlog.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path of a file that receives a copy of the logs
    """
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    # Silence noisy third-party loggers; the transport poll hits httpx every second
    noisy_loggers = [
        "httpx",
        "httpcore",
        "httpcore.connection",
        "httpcore.http11",
        "redis",
        "asyncio",
    ]
    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            dataclass_to_dict_processor,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
