"""Structured logging setup."""

import logging
import sys

import structlog

SENSITIVE_KEYS = {"value", "token", "credential", "authorization"}


def redact_secrets(logger, method_name, event_dict):
    """Never let a token value or credential reach the log output."""
    for key in SENSITIVE_KEYS & event_dict.keys():
        event_dict[key] = "***"
    return event_dict


def configure_logging(level: str = "WARNING") -> None:
    """Route structlog output to stderr at the given level.

    Log output shares stderr with the rich error console, so the default
    level keeps it quiet unless --verbose or log_level asks otherwise.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            redact_secrets,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        # Resolve stderr per logger so redirected streams are honoured
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
