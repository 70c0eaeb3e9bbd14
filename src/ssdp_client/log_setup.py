"""Process-wide logging setup for the command line entry point."""

import logging
import sys

import structlog

from .config import LoggingConfig


def configure_logging(logging_config: LoggingConfig) -> None:
    """Route structlog through stdlib logging on stderr.

    Library code never calls this; it only obtains loggers. Applications
    embedding the client configure logging themselves.
    """
    logging.basicConfig(
        level=getattr(logging, logging_config.level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
        force=True
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()) if logging_config.format.lower() == "console"
            else structlog.processors.JSONRenderer(sort_keys=True)
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    structlog.get_logger(__name__).debug("Logging configured", level=logging_config.level, format=logging_config.format)
