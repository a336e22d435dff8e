"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from clinic_intake.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from clinic_intake.config.schema import (
    Config,
    DataStoreConfig,
    DriveConfig,
    LoggingConfig,
    OperationLoggingConfig,
    TransportConfig,
)
from clinic_intake.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "CLINIC_INTAKE_"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (CLINIC_INTAKE_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("custom/config.json"))
        >>> template = config.templates.template_path
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)

    _check_sensitive_values(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format. See examples/config.example.json."
        )


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If JSON is malformed
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
            logger.info(f"Loaded configuration from {config_path}")
            return config_dict
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            )
    else:
        logger.info(
            f"Config file not found: {config_path}. Using default configuration."
        )
        # Deep copy so callers never mutate the defaults
        return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with CLINIC_INTAKE_ prefix.

    Environment variables follow the pattern: CLINIC_INTAKE_<SECTION>_<FIELD>
    For example: CLINIC_INTAKE_DRIVE_FOLDER_ID, CLINIC_INTAKE_LOG_LEVEL

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied
    """
    # Templates section
    if template_path := os.getenv(f"{ENV_PREFIX}TEMPLATE_PATH"):
        config_dict.setdefault("templates", {})["template_path"] = template_path
        logger.debug("Override: template_path from environment")

    if template_version := os.getenv(f"{ENV_PREFIX}TEMPLATE_VERSION"):
        config_dict.setdefault("templates", {})["template_version"] = template_version
        logger.debug("Override: template_version from environment")

    # Output section
    if output_dir := os.getenv(f"{ENV_PREFIX}OUTPUT_DIR"):
        config_dict.setdefault("output", {})["output_dir"] = output_dir
        logger.debug("Override: output_dir from environment")

    if filename_prefix := os.getenv(f"{ENV_PREFIX}FILENAME_PREFIX"):
        config_dict.setdefault("output", {})["filename_prefix"] = filename_prefix
        logger.debug("Override: filename_prefix from environment")

    # Drive section
    if upload_url := os.getenv(f"{ENV_PREFIX}DRIVE_UPLOAD_URL"):
        config_dict.setdefault("drive", {})["upload_url"] = upload_url
        logger.debug("Override: upload_url from environment")

    if folder_id := os.getenv(f"{ENV_PREFIX}DRIVE_FOLDER_ID"):
        config_dict.setdefault("drive", {})["folder_id"] = folder_id
        logger.debug("Override: folder_id from environment")

    # Transport section
    if verify_tls := os.getenv(f"{ENV_PREFIX}VERIFY_TLS"):
        config_dict.setdefault("transport", {})["verify_tls"] = _parse_bool(
            verify_tls
        )
        logger.debug("Override: verify_tls from environment")

    if timeout_connect := os.getenv(f"{ENV_PREFIX}TIMEOUT_CONNECT"):
        config_dict.setdefault("transport", {})["timeout_connect"] = int(
            timeout_connect
        )
        logger.debug("Override: timeout_connect from environment")

    if timeout_read := os.getenv(f"{ENV_PREFIX}TIMEOUT_READ"):
        config_dict.setdefault("transport", {})["timeout_read"] = int(timeout_read)
        logger.debug("Override: timeout_read from environment")

    if max_retries := os.getenv(f"{ENV_PREFIX}MAX_RETRIES"):
        config_dict.setdefault("transport", {})["max_retries"] = int(max_retries)
        logger.debug("Override: max_retries from environment")

    if backoff_factor := os.getenv(f"{ENV_PREFIX}BACKOFF_FACTOR"):
        config_dict.setdefault("transport", {})["backoff_factor"] = float(
            backoff_factor
        )
        logger.debug("Override: backoff_factor from environment")

    # Logging section
    if log_level := os.getenv(f"{ENV_PREFIX}LOG_LEVEL"):
        config_dict.setdefault("logging", {})["level"] = log_level
        logger.debug("Override: log_level from environment")

    if log_file := os.getenv(f"{ENV_PREFIX}LOG_FILE"):
        config_dict.setdefault("logging", {})["log_file"] = log_file
        logger.debug("Override: log_file from environment")

    if redact_pii := os.getenv(f"{ENV_PREFIX}REDACT_PII"):
        config_dict.setdefault("logging", {})["redact_pii"] = _parse_bool(redact_pii)
        logger.debug("Override: redact_pii from environment")

    config_dict = _apply_datastore_env_overrides(config_dict)
    config_dict = _apply_operation_logging_env_overrides(config_dict)

    return config_dict


def _apply_datastore_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply document store environment variable overrides.

    Environment variables follow the pattern: CLINIC_INTAKE_DATASTORE_<FIELD>
    For example: CLINIC_INTAKE_DATASTORE_BACKEND, CLINIC_INTAKE_DATASTORE_JSON_PATH

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with datastore overrides applied
    """
    if backend := os.getenv(f"{ENV_PREFIX}DATASTORE_BACKEND"):
        config_dict.setdefault("datastore", {})["backend"] = backend
        logger.debug("Override: datastore backend from environment")

    if json_path := os.getenv(f"{ENV_PREFIX}DATASTORE_JSON_PATH"):
        config_dict.setdefault("datastore", {})["json_path"] = json_path
        logger.debug("Override: datastore json_path from environment")

    if credentials_path := os.getenv(f"{ENV_PREFIX}DATASTORE_CREDENTIALS_PATH"):
        config_dict.setdefault("datastore", {})["credentials_path"] = credentials_path
        logger.debug("Override: datastore credentials_path from environment")

    if project_id := os.getenv(f"{ENV_PREFIX}DATASTORE_PROJECT_ID"):
        config_dict.setdefault("datastore", {})["project_id"] = project_id
        logger.debug("Override: datastore project_id from environment")

    return config_dict


def _apply_operation_logging_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply per-operation logging configuration environment variable overrides.

    Environment variables follow the pattern: CLINIC_INTAKE_OP_LOG_<OPERATION>_LEVEL
    For example: CLINIC_INTAKE_OP_LOG_UPLOAD_LEVEL

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with operation logging overrides applied
    """
    for operation in ("materialize", "upload", "schedule", "csv"):
        if level := os.getenv(f"{ENV_PREFIX}OP_LOG_{operation.upper()}_LEVEL"):
            config_dict.setdefault("operation_logging", {})[
                f"{operation}_log_level"
            ] = level
            logger.debug(f"Override: {operation}_log_level from environment")

    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string.

    Args:
        value: String value to parse (case-insensitive)

    Returns:
        Boolean value
    """
    return value.lower() in ("true", "1", "yes", "on")


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when a bearer token was written into the configuration file.

    Args:
        config_dict: Configuration dictionary to check
    """
    drive = config_dict.get("drive", {})
    if "access_token" in drive:
        logger.warning(
            "WARNING: Access token found in configuration file! "
            "Tokens should be stored in environment variables, not config files. "
            f"Use the {drive.get('token_env_var', ENV_PREFIX + 'DRIVE_TOKEN')} "
            "environment variable instead."
        )


def get_drive_config(config: Config) -> DriveConfig:
    """Get file upload service configuration.

    Example:
        >>> config = load_config()
        >>> folder = get_drive_config(config).folder_id
    """
    return config.drive


def get_datastore_config(config: Config) -> DataStoreConfig:
    """Get document store configuration."""
    return config.datastore


def get_transport_config(config: Config) -> TransportConfig:
    """Get transport configuration.

    Example:
        >>> config = load_config()
        >>> transport = get_transport_config(config)
        >>> timeout = transport.timeout_connect
    """
    return config.transport


def get_logging_config(config: Config) -> LoggingConfig:
    """Get logging configuration."""
    return config.logging


def get_operation_logging_config(config: Config) -> OperationLoggingConfig:
    """Get per-operation logging configuration.

    Example:
        >>> config = load_config()
        >>> op_log_cfg = get_operation_logging_config(config)
        >>> upload_level = op_log_cfg.upload_log_level
    """
    return config.operation_logging
