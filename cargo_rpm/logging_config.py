"""Logging configuration for cargo-rpm."""

import logging
import os
import sys
from typing import Any, Dict

LOG_LEVEL_ENV = "CARGO_RPM_LOG_LEVEL"
LOG_FORMAT_ENV = "CARGO_RPM_LOG_FORMAT"


def setup_logging(level: str = "INFO", structured: bool = False) -> logging.Logger:
    """
    Set up the package logger.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        structured: Whether to use structured JSON logging

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("cargo_rpm")

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Logs go to stderr, alongside warning and error lines
    handler = logging.StreamHandler(sys.stderr)

    if structured:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s - %(name)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger


def set_log_level(level: str) -> None:
    """Change the level of the package logger after setup."""
    logging.getLogger("cargo_rpm").setLevel(getattr(logging, level.upper(), logging.INFO))


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        import json
        from datetime import datetime

        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


# Global logger instance
logger = setup_logging(
    os.getenv(LOG_LEVEL_ENV, "INFO"),
    structured=os.getenv(LOG_FORMAT_ENV, "").lower() == "json",
)
