"""Custom exception classes for the clinic intake toolkit.

All exceptions inherit from ClinicIntakeError to allow catching all custom exceptions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import requests


class ClinicIntakeError(Exception):
    """Base exception for all clinic intake custom exceptions."""

    pass


class ValidationError(ClinicIntakeError):
    """Raised when data validation fails.

    Examples:
        - Intake CSV missing required columns
        - Unknown demographic option
        - Malformed record JSON
    """

    pass


class ConfigurationError(ClinicIntakeError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class TemplateError(ClinicIntakeError):
    """Base exception for form template processing errors.

    Examples:
        - Template file not found
        - Filled document cannot be written
        - Signature image cannot be decoded
    """

    pass


class TemplateLoadError(TemplateError):
    """Raised when the PDF template cannot be located or opened.

    Examples:
        - File not found
        - Permission denied
        - Not a PDF, or a PDF without pages
    """

    pass


class SerializationError(TemplateError):
    """Raised when a filled document cannot be converted back to bytes.

    The attempt is over: no partial output is returned and the caller must
    start again from a freshly loaded template.
    """

    pass


class SignatureImageError(TemplateError):
    """Raised when the supplied signature image cannot be decoded.

    Examples:
        - Truncated PNG data
        - Path to a missing image file
    """

    pass


class ScheduleError(ClinicIntakeError):
    """Raised when a clinic schedule operation cannot be completed.

    Examples:
        - Appointment id not found for the office
        - Provider id not registered for the office
    """

    pass


class InvalidStageTransitionError(ScheduleError):
    """Raised when an appointment is moved out of visit order.

    Examples:
        - Sending a patient to the doctor before vitals are recorded
        - Moving a seen patient back to checked-in
    """

    pass


class DataStoreError(ClinicIntakeError):
    """Raised when the remote document store cannot be read or written.

    Examples:
        - Firestore credentials rejected
        - JSON store file is not valid JSON
    """

    pass


class TransportError(ClinicIntakeError):
    """Raised when network/transport issues occur.

    Examples:
        - Connection timeout
        - HTTP error responses
        - Network unreachable
    """

    pass


class UploadFailureReason(Enum):
    """Why an upload to the file service failed."""

    DATA_UNAVAILABLE = "DATA_UNAVAILABLE"
    INVALID_DESTINATION = "INVALID_DESTINATION"
    UPLOAD_REJECTED = "UPLOAD_REJECTED"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"


class UploadError(TransportError):
    """Raised when the file upload service does not return a file id.

    Attributes:
        reason: Structured failure reason
        status_code: HTTP status code if a response was received
    """

    def __init__(
        self,
        message: str,
        reason: UploadFailureReason,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ErrorCategory(Enum):
    """Error categorization for handling strategy.

    Attributes:
        TRANSIENT: Safe to try again later (network issues, timeouts, 5xx)
        PERMANENT: Fix the input and start over (validation errors, 4xx, bad templates)
        CRITICAL: Stop immediately (configuration, unreachable services)

    Example:
        >>> category = categorize_error(ConnectionError("Network unreachable"))
        >>> if category == ErrorCategory.CRITICAL:
        ...     raise
    """

    TRANSIENT = "TRANSIENT"
    PERMANENT = "PERMANENT"
    CRITICAL = "CRITICAL"


@dataclass
class ErrorInfo:
    """Structured error information for actionable error handling.

    Attributes:
        category: Error category (TRANSIENT, PERMANENT, CRITICAL)
        error_type: Exception class name (e.g., "TemplateLoadError")
        message: User-friendly error message
        remediation: Actionable guidance for resolving the error
        is_retryable: Whether trying the same operation again may succeed
        technical_details: Optional technical details for debugging
        patient_name: Optional patient display name if error occurred during a fill

    Example:
        >>> error_info = ErrorInfo(
        ...     category=ErrorCategory.TRANSIENT,
        ...     error_type="ConnectionError",
        ...     message="Cannot reach upload endpoint",
        ...     remediation="Check network connectivity",
        ...     is_retryable=True
        ... )
    """

    category: ErrorCategory
    error_type: str
    message: str
    remediation: str
    is_retryable: bool
    technical_details: Optional[str] = None
    patient_name: Optional[str] = None


def categorize_error(exception: Exception) -> ErrorCategory:
    """Categorize exception for error handling strategy.

    Args:
        exception: The exception to categorize

    Returns:
        ErrorCategory indicating handling strategy

    Example:
        >>> categorize_error(requests.Timeout("slow"))
        ErrorCategory.TRANSIENT
        >>> categorize_error(TemplateLoadError("missing"))
        ErrorCategory.PERMANENT
        >>> categorize_error(ConfigurationError("bad config"))
        ErrorCategory.CRITICAL
    """
    if isinstance(exception, ConfigurationError):
        return ErrorCategory.CRITICAL

    if isinstance(exception, requests.exceptions.SSLError):
        return ErrorCategory.CRITICAL

    if isinstance(exception, requests.ConnectionError):
        return ErrorCategory.CRITICAL

    if isinstance(exception, UploadError):
        if exception.status_code is not None and (
            exception.status_code == 429 or 500 <= exception.status_code < 600
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.PERMANENT

    if isinstance(exception, (requests.Timeout, TransportError, DataStoreError)):
        return ErrorCategory.TRANSIENT

    if isinstance(exception, requests.HTTPError):
        if hasattr(exception, 'response') and exception.response is not None:
            if 500 <= exception.response.status_code < 600:
                return ErrorCategory.TRANSIENT
            if 400 <= exception.response.status_code < 500:
                return ErrorCategory.PERMANENT

    if isinstance(exception, (ValidationError, TemplateError, ScheduleError)):
        return ErrorCategory.PERMANENT

    return ErrorCategory.PERMANENT


def create_error_info(
    exception: Exception,
    patient_name: Optional[str] = None,
) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred
        patient_name: Optional patient display name

    Returns:
        ErrorInfo with categorization and remediation guidance
    """
    category = categorize_error(exception)
    error_type = type(exception).__name__
    message = str(exception)
    is_retryable = category == ErrorCategory.TRANSIENT

    remediation = _generate_remediation(exception, category)

    technical_details = None
    if hasattr(exception, '__cause__') and exception.__cause__:
        technical_details = f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"

    return ErrorInfo(
        category=category,
        error_type=error_type,
        message=message,
        remediation=remediation,
        is_retryable=is_retryable,
        technical_details=technical_details,
        patient_name=patient_name,
    )


def _generate_remediation(exception: Exception, category: ErrorCategory) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred
        category: Error category

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, TemplateLoadError):
        return (
            "Form template could not be opened. Check templates.template_path in "
            "config.json points to a fillable PDF with at least one page."
        )

    if isinstance(exception, SerializationError):
        return (
            "The filled form could not be written. Reload the template and fill "
            "the form again from the start."
        )

    if isinstance(exception, SignatureImageError):
        return "Signature image could not be read. Capture the signature again as PNG."

    if isinstance(exception, InvalidStageTransitionError):
        return (
            "Visit steps must happen in order: booked, checked in, vitals, "
            "sent to doctor, seen by doctor."
        )

    if isinstance(exception, requests.exceptions.SSLError):
        return (
            "TLS/SSL validation failed. For local mock servers set "
            "transport.verify_tls=false in config.json (development only)."
        )

    if isinstance(exception, requests.ConnectionError):
        return (
            "Cannot reach endpoint. Check: 1) Network connectivity, "
            "2) drive.upload_url in config.json, 3) Endpoint is running."
        )

    if isinstance(exception, requests.Timeout):
        return (
            "Request timed out. Consider increasing transport.timeout_read "
            "in config.json."
        )

    if isinstance(exception, UploadError):
        if exception.reason == UploadFailureReason.INVALID_DESTINATION:
            return "Check drive.folder_id in config.json or pass --folder-id."
        if exception.reason == UploadFailureReason.DATA_UNAVAILABLE:
            return "The document to upload is empty or missing. Generate the form again."
        return (
            "Upload service rejected the file. Verify the access token is valid "
            "and the service account can write to the destination folder."
        )

    if isinstance(exception, ValidationError):
        return (
            "Data validation failed. Review the intake record. "
            "See examples/intake_sample.csv for the expected columns."
        )

    if isinstance(exception, ConfigurationError):
        return (
            "Configuration error. Check config.json for missing or invalid values. "
            "Use examples/config.example.json as template."
        )

    if isinstance(exception, DataStoreError):
        return "Document store unavailable. Check datastore settings and credentials."

    return (
        "Review error message and check logs/ for complete details."
    )
