"""Audit trail functionality for the clinic intake toolkit.

This module provides structured audit logging for tracking generated forms,
uploads and visit workflow changes.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Audit events are
    logged at INFO level for successful operations and ERROR level for failures.

    Args:
        event_type: Type of operation (e.g., "FORM_MATERIALIZED", "FORM_UPLOADED",
                   "STAGE_ADVANCED", "CSV_PROCESSED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - input_file: Path to input file (if applicable)
                - record_count: Number of records processed
                - duration: Operation duration in seconds
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for tracking related events

    Example:
        >>> log_audit_event("FORM_UPLOADED", {
        ...     "status": "success",
        ...     "filename": "ClinicForm_2024-03-05_09-30_Jane_Doe.pdf",
        ...     "file_id": "1AbC",
        ... })
    """
    if "timestamp" not in details:
        details["timestamp"] = time.time()

    if "correlation_id" not in details:
        details["correlation_id"] = str(uuid.uuid4())

    message_parts = [f"AUDIT [{event_type}]"]

    field_order = [
        "status",
        "input_file",
        "record_count",
        "duration",
        "error_count",
        "error_message",
        "correlation_id",
    ]

    for field in field_order:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.2f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in field_order and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    status = details.get("status", "unknown")
    if status == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)


def log_http_exchange(
    operation: str,
    request_summary: str,
    response_body: str,
    status_code: int,
) -> None:
    """Log an HTTP exchange with a remote service.

    The summary line is logged at INFO; the full response body at DEBUG.
    Document bytes are never logged, only their description.

    Args:
        operation: Operation name (e.g., "DRIVE_UPLOAD")
        request_summary: Short description of the request
        response_body: Response body text
        status_code: HTTP status code

    Example:
        >>> log_http_exchange("DRIVE_UPLOAD", "POST form.pdf (2048 bytes)", '{"id": "1"}', 200)
    """
    correlation_id = str(uuid.uuid4())

    logger.info(
        f"EXCHANGE [{operation}] | "
        f"status_code={status_code} | "
        f"correlation_id={correlation_id} | "
        f"request={request_summary} | "
        f"response_size={len(response_body)} bytes"
    )

    logger.debug(
        f"EXCHANGE RESPONSE [{operation}] | "
        f"correlation_id={correlation_id}\n"
        f"{response_body}"
    )
