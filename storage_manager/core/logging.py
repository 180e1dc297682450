"""
Centralized logging configuration using structlog for better observability.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import structlog
from structlog.types import FilteringBoundLogger

from .config import LoggingSettings


def configure_structlog(
    log_level: str = "INFO",
    use_json: bool = False,
) -> None:
    """
    Configure structlog for structured logging.

    Args:
        log_level: Logging level
        use_json: Whether to use JSON output format
    """
    timestamper = structlog.processors.TimeStamper(fmt="ISO")

    shared_processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        timestamper,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        # JSON output for production
        renderers = [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Human-readable output for development
        renderers = [structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=shared_processors + renderers,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def setup_logging(
    settings: LoggingSettings,
    process_name: Optional[str] = None,
) -> FilteringBoundLogger:
    """
    Set up comprehensive logging configuration.

    Args:
        settings: Logging configuration settings
        process_name: Optional process name for context

    Returns:
        Configured structlog logger
    """
    configure_structlog(log_level=settings.level, use_json=settings.use_json)

    if settings.file_path:
        file_path = Path(settings.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=file_path,
            maxBytes=settings.max_file_size,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(settings.format))
        file_handler.setLevel(getattr(logging, settings.level.upper()))

        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger("storage-manager")
    if process_name:
        logger = logger.bind(process=process_name)

    # Silence noisy third-party loggers
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)

    return logger


def get_logger(name: str, **context):
    """
    Get a logger with optional context.

    Args:
        name: Logger name (usually __name__)
        **context: Additional context to bind to logger

    Returns:
        Configured logger with context
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger
