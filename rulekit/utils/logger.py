"""
Logger utility for rulekit.

Implements rotating file logs in user space ({$RULEKIT_USER_SPACE or ~/.rulekit}/logs/):
- rulekit.log: Main log with 5MB rotation, keeps 3 backups
- rulekit.errors.log: Errors only, 2MB rotation, keeps 2 backups
- rulekit.json: Structured JSON, 5MB rotation, keeps 2 backups
"""

import json
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional, Union

from rulekit.config import get_user_space


# Resolution context attached by the resolver through ``extra=``
CONTEXT_FIELDS = ("rule", "label", "key")


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Records carrying resolution context (see ``resolution_context``) also
    emit the rule name, target label and configuration key digest.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def resolution_context(key) -> Dict[str, str]:
    """``extra=`` mapping identifying a configuration key in log records."""
    return {"rule": key.rule, "label": key.label, "key": key.digest}


def get_log_dir() -> Path:
    """Get log directory from user space."""
    log_dir = get_user_space() / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_logger(name: str = "rulekit", level: Optional[Union[int, str]] = None) -> logging.Logger:
    """
    Get or create a logger with rotating file handlers.

    Logs to:
    - stderr (console) - warnings and errors only
    - {USER_SPACE}/logs/rulekit.log (rotating, 5MB max, 3 backups)
    - {USER_SPACE}/logs/rulekit.errors.log (errors only, 2MB max, 2 backups)
    - {USER_SPACE}/logs/rulekit.json (structured JSON, 5MB max, 2 backups)

    Module loggers (``logging.getLogger(__name__)``) under ``rulekit``
    propagate here.

    Args:
        name: Logger name
        level: Optional logging level (defaults to DEBUG)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        text_formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        # Console handler (stderr) - minimal output
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(text_formatter)
        logger.addHandler(console_handler)

        # File handlers (user space)
        try:
            log_dir = get_log_dir()

            main_handler = RotatingFileHandler(
                log_dir / "rulekit.log",
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            main_handler.setLevel(logging.DEBUG)
            main_handler.setFormatter(text_formatter)
            logger.addHandler(main_handler)

            error_handler = RotatingFileHandler(
                log_dir / "rulekit.errors.log",
                maxBytes=2 * 1024 * 1024,
                backupCount=2,
                encoding="utf-8",
            )
            error_handler.setLevel(logging.ERROR)
            error_handler.setFormatter(text_formatter)
            logger.addHandler(error_handler)

            json_handler = RotatingFileHandler(
                log_dir / "rulekit.json",
                maxBytes=5 * 1024 * 1024,
                backupCount=2,
                encoding="utf-8",
            )
            json_handler.setLevel(logging.INFO)
            json_handler.setFormatter(JsonFormatter())
            logger.addHandler(json_handler)

        except OSError as e:
            # Console logging still works without a writable user space
            logger.warning("File logging unavailable: %s", e)

    if level is not None:
        logger.setLevel(level)
    elif not logger.level:
        logger.setLevel(logging.DEBUG)

    return logger
