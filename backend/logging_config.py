"""
Logging configuration for the craftchain service using structlog
"""

import logging
import os
import sys

import structlog
from structlog.processors import TimeStamper, add_log_level, dict_tracebacks
from structlog.stdlib import BoundLogger, LoggerFactory, add_logger_name, filter_by_level

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "").lower() in {"1", "true", "yes"}


def setup_logging(
    log_level: str = LOG_LEVEL,
    json_format: bool = LOG_JSON,
    library_log_level: str = "WARNING",
) -> None:
    """
    Route structlog events through stdlib logging on stdout

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_format: Render JSON lines instead of the colored console format
        library_log_level: Level for SQLAlchemy, urllib3 and uvicorn access logs
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    shared_processors = [
        add_log_level,
        add_logger_name,
        TimeStamper(fmt="iso"),
        dict_tracebacks,
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty(), pad_event=30)

    structlog.configure(
        processors=[
            filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared_processors,
        )
    )
    root_logger.addHandler(handler)

    library_level = getattr(logging, library_log_level.upper(), logging.WARNING)
    for name in ("sqlalchemy.engine", "urllib3", "uvicorn.access"):
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str) -> BoundLogger:
    """Get a structlog logger instance"""
    return structlog.get_logger(name)
