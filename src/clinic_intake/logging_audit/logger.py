"""Logging configuration and logger factory for the clinic intake toolkit.

This module provides centralized logging configuration with support for:
- Console and file handlers with different log levels
- Log rotation to prevent unbounded file growth
- PII redaction via custom formatters
- Per-operation log levels
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .formatters import PIIRedactingFormatter

if TYPE_CHECKING:
    from ..config.schema import OperationLoggingConfig

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "clinic-intake.log"
MAX_LOG_FILE_SIZE = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

_logging_configured = False

# Operation-specific logger names
OPERATION_LOGGERS = {
    "materialize": "clinic_intake.materialize",
    "upload": "clinic_intake.upload",
    "schedule": "clinic_intake.schedule",
    "csv": "clinic_intake.csv",
}

logger = logging.getLogger(__name__)


def _numeric_level(level: str, operation: Optional[str] = None) -> int:
    numeric_level = getattr(logging, level.upper(), None)
    if not isinstance(numeric_level, int):
        target = f" for {operation}" if operation else ""
        raise ValueError(
            f"Invalid log level{target}: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return numeric_level


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    redact_pii: bool = False,
) -> None:
    """Configure logging for the clinic intake toolkit.

    Sets up both console and file handlers with appropriate log levels and formatting.
    This function is idempotent - it can be called multiple times safely.

    Args:
        level: Log level for console output (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               File handler always uses DEBUG level.
        log_file: Path to log file. If None, uses DEFAULT_LOG_FILE or
                 CLINIC_INTAKE_LOG_FILE environment variable if set.
        redact_pii: Whether to redact PII (names, emails, phones, DOBs) from logs

    Raises:
        ValueError: If invalid log level is provided
        RuntimeError: If log directory cannot be created

    Example:
        >>> configure_logging(level="DEBUG", redact_pii=True)
        >>> configure_logging(level="INFO", log_file=Path("custom/app.log"))
    """
    global _logging_configured

    numeric_level = _numeric_level(level)

    if log_file is None:
        env_log_file = os.environ.get("CLINIC_INTAKE_LOG_FILE")
        log_file = Path(env_log_file) if env_log_file else DEFAULT_LOG_FILE

    log_dir = log_file.parent
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeError(
            f"Failed to create log directory: {log_dir}. "
            f"Ensure write permissions are available. Error: {e}"
        ) from e

    root_logger = logging.getLogger()

    # Reconfiguring replaces the handlers installed last time
    if _logging_configured:
        root_logger.handlers.clear()

    root_logger.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(
        PIIRedactingFormatter(fmt=DEFAULT_LOG_FORMAT, redact_pii=redact_pii)
    )
    root_logger.addHandler(console_handler)

    try:
        file_handler = RotatingFileHandler(
            filename=str(log_file),
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            PIIRedactingFormatter(fmt=DEFAULT_LOG_FORMAT, redact_pii=redact_pii)
        )
        root_logger.addHandler(file_handler)
    except OSError as e:
        root_logger.warning(
            f"Failed to create file handler for {log_file}: {e}. "
            f"Logging to console only."
        )

    _logging_configured = True


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger for the specified module.

    Args:
        module_name: Name of the module, typically __name__

    Returns:
        Logger instance for the module
    """
    return logging.getLogger(module_name)


def get_operation_logger(operation: str) -> logging.Logger:
    """Get a logger for a specific operation type.

    Operation loggers enable per-operation log level configuration.
    Supported operations: materialize, upload, schedule, csv.

    Args:
        operation: Operation type

    Returns:
        Logger instance for the operation

    Raises:
        ValueError: If operation is not a recognized type

    Example:
        >>> logger = get_operation_logger("upload")
        >>> logger.info("Upload started")
    """
    if operation not in OPERATION_LOGGERS:
        raise ValueError(
            f"Unknown operation: {operation}. "
            f"Must be one of: {', '.join(OPERATION_LOGGERS.keys())}"
        )
    return logging.getLogger(OPERATION_LOGGERS[operation])


def configure_operation_logging(
    materialize_log_level: str = "INFO",
    upload_log_level: str = "INFO",
    schedule_log_level: str = "INFO",
    csv_log_level: str = "INFO",
) -> None:
    """Configure logging levels for each operation type.

    Args:
        materialize_log_level: Log level for form filling and signing
        upload_log_level: Log level for file uploads
        schedule_log_level: Log level for clinic schedule operations
        csv_log_level: Log level for CSV batch loading

    Raises:
        ValueError: If any log level is invalid
    """
    levels = {
        "materialize": materialize_log_level,
        "upload": upload_log_level,
        "schedule": schedule_log_level,
        "csv": csv_log_level,
    }

    for operation, level in levels.items():
        numeric_level = _numeric_level(level, operation)
        logger_name = OPERATION_LOGGERS[operation]
        logging.getLogger(logger_name).setLevel(numeric_level)
        logger.debug("Set %s logger level to %s", logger_name, level.upper())


def configure_operation_logging_from_config(config: "OperationLoggingConfig") -> None:
    """Configure operation logging from an OperationLoggingConfig object.

    Example:
        >>> from clinic_intake.config.schema import OperationLoggingConfig
        >>> configure_operation_logging_from_config(
        ...     OperationLoggingConfig(upload_log_level="DEBUG")
        ... )
    """
    configure_operation_logging(
        materialize_log_level=config.materialize_log_level,
        upload_log_level=config.upload_log_level,
        schedule_log_level=config.schedule_log_level,
        csv_log_level=config.csv_log_level,
    )
