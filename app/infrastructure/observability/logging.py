"""
Structured logging setup for the volunteer background jobs.
Provides JSON-formatted logs with consistent fields for production monitoring.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging with JSON output for production.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _add_job_context,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)


def _add_job_context(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Merge context bound with structlog.contextvars (e.g. the running job name)."""
    return structlog.contextvars.merge_contextvars(logger, method_name, event_dict)


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def log_job_run(job: str, success: bool, duration_seconds: float, **fields: Any) -> None:
    """Log the outcome of a job run with consistent fields."""
    logger = get_logger("jobs")

    log_data = {
        "job": job,
        "success": success,
        "duration_seconds": round(duration_seconds, 2),
        **fields,
    }

    if success:
        logger.info("Job run completed", **log_data)
    else:
        logger.error("Job run failed", **log_data)
