"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _validate_level(v: str) -> str:
    v_upper = v.upper()
    if v_upper not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {v}. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )
    return v_upper


class TemplateConfig(BaseModel):
    """Form template configuration.

    Attributes:
        template_path: Path to the fillable intake PDF
        template_version: Version key selecting the signature placement table
    """

    template_path: Path = Field(
        default=Path("templates/intake-form.pdf"),
        description="Path to the fillable intake PDF template"
    )
    template_version: str = Field(
        default="intake-v1",
        min_length=1,
        description="Template version used to select signature placements"
    )


class OutputConfig(BaseModel):
    """Configuration for generated documents.

    Attributes:
        output_dir: Directory where filled forms are written
        filename_prefix: Prefix of generated file names
        keep_local_copy: Whether uploaded forms are also kept on disk
    """

    output_dir: Path = Field(
        default=Path("output"),
        description="Directory where filled forms are written"
    )
    filename_prefix: str = Field(
        default="ClinicForm",
        min_length=1,
        description="Prefix of generated file names"
    )
    keep_local_copy: bool = Field(
        default=True,
        description="Keep a local copy of uploaded forms"
    )

    @field_validator("filename_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Reject prefixes that would create nested paths.

        Raises:
            ValueError: If the prefix contains a path separator
        """
        if "/" in v or "\\" in v:
            raise ValueError(
                f"Invalid filename_prefix: {v}. Must not contain path separators"
            )
        return v


class DriveConfig(BaseModel):
    """Configuration for the file upload service.

    Attributes:
        upload_url: Multipart upload endpoint
        folder_id: Default destination folder id
        token_env_var: Environment variable holding the bearer token
    """

    upload_url: str = Field(
        default=(
            "https://www.googleapis.com/upload/drive/v3/files"
            "?uploadType=multipart&fields=id&supportsAllDrives=true"
        ),
        description="Multipart upload endpoint"
    )
    folder_id: Optional[str] = Field(
        default=None,
        description="Default destination folder id"
    )
    token_env_var: str = Field(
        default="CLINIC_INTAKE_DRIVE_TOKEN",
        description="Environment variable holding the bearer token"
    )

    @field_validator("upload_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is valid HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        if not v.startswith(("http://", "https://")):
            raise ValueError(
                f"Invalid URL: {v}. Must start with http:// or https://"
            )
        return v


class DataStoreConfig(BaseModel):
    """Configuration for the clinic document store.

    Attributes:
        backend: "json" for a local JSON file, "firestore" for Cloud Firestore
        json_path: Path of the JSON store file
        credentials_path: Service account key file for Firestore
        project_id: Optional Firestore project id
    """

    backend: str = Field(
        default="json",
        description="Document store backend: json or firestore"
    )
    json_path: Path = Field(
        default=Path("data/clinic-store.json"),
        description="Path of the JSON store file"
    )
    credentials_path: Optional[Path] = Field(
        default=None,
        description="Service account key file for Firestore"
    )
    project_id: Optional[str] = None

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Validate the backend name.

        Raises:
            ValueError: If backend is not json or firestore
        """
        valid_backends = ["json", "firestore"]
        v_lower = v.lower()
        if v_lower not in valid_backends:
            raise ValueError(
                f"Invalid backend: {v}. Must be one of: {', '.join(valid_backends)}"
            )
        return v_lower


class TransportConfig(BaseModel):
    """Configuration for HTTP/HTTPS transport.

    Attributes:
        verify_tls: Whether to verify TLS certificates
        timeout_connect: Connection timeout in seconds
        timeout_read: Read timeout in seconds
        max_retries: Maximum retry attempts for failed requests
        backoff_factor: Exponential backoff factor for retries
    """

    verify_tls: bool = True
    timeout_connect: int = Field(
        default=10,
        ge=1,
        description="Connection timeout in seconds"
    )
    timeout_read: int = Field(
        default=30,
        ge=1,
        description="Read timeout in seconds"
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        description="Maximum retry attempts"
    )
    backoff_factor: float = Field(
        default=1.0,
        ge=0.0,
        description="Exponential backoff factor"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_pii: Whether to redact PII from logs
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/clinic-intake.log"),
        description="Log file path"
    )
    redact_pii: bool = Field(
        default=True,
        description="Redact PII from logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Returns:
            Validated log level (uppercase)

        Raises:
            ValueError: If log level is not valid
        """
        return _validate_level(v)


class OperationLoggingConfig(BaseModel):
    """Per-operation logging configuration.

    Allows different log levels for different operation types to enable
    focused debugging without excessive log noise.

    Attributes:
        materialize_log_level: Log level for form filling and signing
        upload_log_level: Log level for file uploads
        schedule_log_level: Log level for clinic schedule operations
        csv_log_level: Log level for CSV batch loading

    Example:
        >>> op_logging = OperationLoggingConfig(
        ...     materialize_log_level="DEBUG",
        ...     upload_log_level="WARNING"
        ... )
    """

    materialize_log_level: str = Field(
        default="INFO",
        description="Log level for form filling and signing"
    )
    upload_log_level: str = Field(
        default="INFO",
        description="Log level for file uploads"
    )
    schedule_log_level: str = Field(
        default="INFO",
        description="Log level for clinic schedule operations"
    )
    csv_log_level: str = Field(
        default="INFO",
        description="Log level for CSV batch loading"
    )

    @field_validator(
        "materialize_log_level",
        "upload_log_level",
        "schedule_log_level",
        "csv_log_level",
    )
    @classmethod
    def validate_operation_log_level(cls, v: str) -> str:
        """Validate operation-specific log level."""
        return _validate_level(v)


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        templates: Form template configuration
        output: Generated document configuration
        drive: File upload service configuration
        datastore: Clinic document store configuration
        transport: HTTP/HTTPS transport configuration
        logging: Logging configuration
        operation_logging: Per-operation logging configuration

    Example:
        >>> config = Config(drive=DriveConfig(folder_id="abc123"))
        >>> config.templates.template_version
        'intake-v1'
    """

    templates: TemplateConfig = TemplateConfig()
    output: OutputConfig = OutputConfig()
    drive: DriveConfig = DriveConfig()
    datastore: DataStoreConfig = DataStoreConfig()
    transport: TransportConfig = TransportConfig()
    logging: LoggingConfig = LoggingConfig()
    operation_logging: OperationLoggingConfig = OperationLoggingConfig()

    @model_validator(mode="after")
    def validate_datastore_paths(self) -> "Config":
        """Require a credentials file when Firestore is selected.

        Raises:
            ValueError: If backend is firestore without credentials_path
        """
        if self.datastore.backend == "firestore" and self.datastore.credentials_path is None:
            raise ValueError(
                "datastore.credentials_path is required when backend is 'firestore'. "
                "Fix: Point it at the service account key JSON file."
            )
        return self
