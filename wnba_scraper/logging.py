"""
Centralized structlog configuration for the WNBA importer.

Provides JSON-formatted logs consistent with the other data services.
Logs include environment context for better filtering in production.
"""

from __future__ import annotations

import logging
import sys

import structlog


def _normalize_log_level(level: str | None, environment: str) -> int:
    env = environment.lower()
    if level:
        normalized = level.strip().upper()
    else:
        normalized = "INFO" if env == "production" else "DEBUG"
    return logging._nameToLevel.get(normalized, logging.INFO)


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    # Resolved per call so a replaced sys.stderr is honoured
    return structlog.PrintLogger(sys.stderr)


def configure_logging(level: str | None = None, environment: str = "development") -> None:
    """
    Configure structlog with JSON output.

    Called once by the CLI after settings are loaded. All logs are output
    as JSON to stderr, leaving stdout to the operator-facing report.
    """
    resolved_level = _normalize_log_level(level, environment)
    logging.basicConfig(level=resolved_level)
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.EventRenamer("message"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolved_level),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


# Global logger instance with service context. Kept as a lazy proxy so the
# configuration applied by configure_logging() is picked up after import.
logger = structlog.get_logger("wnba-scraper", service="wnba-scraper")
