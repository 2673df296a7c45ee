"""
Structured JSON logging for the staking chain.

Modules log through ``logging.getLogger(__name__)`` with an ``event`` key in
``extra``; ``setup_logging`` attaches JSON handlers to the package logger so
every record carries the same envelope.
"""

import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from pythonjsonlogger import jsonlogger

DEFAULT_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class StakingJsonFormatter(jsonlogger.JsonFormatter):
    """Adds service, environment and call-site fields to each JSON record."""

    def __init__(self, environment: Optional[str] = None, service_name: str = "nftstaking"):
        super().__init__(fmt=DEFAULT_FORMAT)
        self.environment = environment or "production"
        self.service_name = service_name

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("timestamp", None)
        log_record["timestamp"] = log_record["timestamp"] or datetime.fromtimestamp(
            record.created, timezone.utc
        ).isoformat()
        log_record["level"] = log_record.get("level") or record.levelname.lower()
        log_record["service"] = self.service_name
        log_record["environment"] = self.environment
        log_record["source"] = {
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }


def _file_handler(log_file: str, max_bytes: int, backup_count: int) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    return logging.handlers.RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count
    )


def setup_logging(
    name: str = "nftstaking",
    log_file: Optional[str] = None,
    level: str = "INFO",
    environment: str = "production",
    enable_console: bool = True,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Configure the ``name`` logger with JSON output.

    Args:
        name: Logger to configure; the package logger covers every module
        log_file: Rotating JSON log file, skipped when empty
        level: Level name applied to the logger and its handlers
        environment: Value of the ``environment`` field
        enable_console: Also write records to stderr
        max_bytes: Rotation threshold for ``log_file``
        backup_count: Rotated files kept

    Returns:
        The configured logger. With no console and no file it only carries
        a ``NullHandler``.
    """
    logger = logging.getLogger(name)
    numeric_level = getattr(logging, level.upper())
    logger.setLevel(numeric_level)

    # Reconfiguring replaces earlier handlers
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    handlers: List[logging.Handler] = []
    if enable_console:
        handlers.append(logging.StreamHandler(sys.stderr))

    file_error: Optional[OSError] = None
    if log_file:
        try:
            handlers.append(_file_handler(log_file, max_bytes, backup_count))
        except OSError as exc:
            file_error = exc

    formatter = StakingJsonFormatter(environment=environment, service_name=name.split(".")[0])
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    if file_error is not None:
        logger.warning(
            "Log file unavailable",
            extra={"event": "logging.file_unavailable", "log_file": log_file, "error": str(file_error)},
        )
    return logger
