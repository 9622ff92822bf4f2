import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

REVIEW_LOGGER_NAME = "study_review.review"


def setup_logging(
    log_level: str = "INFO", log_to_file: bool = True, logs_dir: str = "logs"
) -> None:
    """Set up logging configuration for the review engine.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_to_file: Whether to log to files in addition to console
        logs_dir: Directory for rotating log files
    """
    level = getattr(logging, log_level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.set_exc_info,
            (
                structlog.processors.JSONRenderer()
                if log_to_file
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_to_file:
        path = Path(logs_dir)
        path.mkdir(parents=True, exist_ok=True)

        app_handler = logging.handlers.RotatingFileHandler(
            path / "app.log", maxBytes=10 * 1024 * 1024, backupCount=5  # 10MB
        )
        app_handler.setLevel(logging.INFO)
        app_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
            )
        )
        root_logger.addHandler(app_handler)

        # Error-only log file; a lost schedule must be findable here
        error_handler = logging.handlers.RotatingFileHandler(
            path / "errors.log", maxBytes=5 * 1024 * 1024, backupCount=10  # 5MB
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s - %(exc_info)s"
            )
        )
        root_logger.addHandler(error_handler)


def get_review_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for review lifecycle events.

    Args:
        name: Logger name (defaults to the review lifecycle logger)
    """
    return structlog.get_logger(name or REVIEW_LOGGER_NAME)


def log_review_event(
    event: str,
    details: Dict[str, Any],
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> None:
    """Log a review lifecycle event (task completed, skipped, schedule reset)."""
    if logger is None:
        logger = get_review_logger()
    logger.info(f"Review event: {event}", review_event=event, **details)


def log_review_failure(
    event: str,
    error: Exception,
    details: Dict[str, Any],
    logger: Optional[structlog.stdlib.BoundLogger] = None,
) -> None:
    """Log a failed review mutation with its context."""
    if logger is None:
        logger = get_review_logger()
    logger.error(
        f"Review failure: {event}",
        review_event=event,
        error_type=type(error).__name__,
        error_message=str(error),
        **details,
    )
