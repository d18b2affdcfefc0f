"""
Logging setup for discovery tools.

Library modules log through the standard ``logging`` module. Applications
embedding the discovery client (and the bundled CLI) call ``setup_logging``
once to route those records through the structlog processor chain and render
them either as JSON or as plain text.
"""

import logging
import logging.config
import sys
import time
from enum import Enum

import structlog

from .exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class TimestampProcessor:
    """Processor to add timestamps to log records."""

    def __call__(self, logger, method_name, event_dict):
        event_dict["timestamp"] = time.time()
        return event_dict


class ComponentProcessor:
    """Processor tagging every record with the emitting component."""

    def __init__(self, component: str):
        self.component = component

    def __call__(self, logger, method_name, event_dict):
        event_dict["component"] = self.component
        return event_dict


class LogConfig:
    """Configuration class for logging setup."""

    def __init__(
        self,
        component: str = "k8s-discovery",
        level: LogLevel = LogLevel.INFO,
        format_type: str = "text",
        stream=None,
    ):
        self.component = component
        self.level = LogLevel(level)
        self.format_type = format_type
        self.stream = stream or sys.stderr


def setup_logging(config: LogConfig) -> None:
    """Configure structlog and the standard library logging tree.

    Records from ``logging.getLogger`` loggers and from ``get_logger`` share
    the same processor chain and renderer.
    """
    if config.format_type not in ("json", "text"):
        raise ConfigurationError(f"Unknown log format: {config.format_type}")

    shared_processors = [
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        TimestampProcessor(),
        ComponentProcessor(config.component),
    ]

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    if config.format_type == "json":
        renderers = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=False)]

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structlog": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": shared_processors,
                "processors": [
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    *renderers,
                ],
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": config.level.value,
                "formatter": "structlog",
                "stream": config.stream,
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": config.level.value,
            },
        },
    }

    try:
        logging.config.dictConfig(logging_config)
    except (ValueError, TypeError, AttributeError, ImportError) as e:
        raise ConfigurationError(f"Failed to configure logging: {e}")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)
