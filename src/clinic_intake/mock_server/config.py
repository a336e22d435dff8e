"""Configuration management for the mock file upload server."""

import json
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_MOCK_CONFIG_PATH = Path("mocks/config.json")


class MockServerConfig(BaseModel):
    """Mock upload server configuration.

    Attributes:
        host: Bind address
        port: HTTP port
        storage_dir: Directory receiving uploaded files, one subdirectory per folder
        log_level: Server log level
        log_path: Rotating log file
        required_token: Bearer token every upload must carry; None accepts any token
        allowed_folders: Folder ids accepted as parents; empty accepts any folder
        response_delay_ms: Delay before answering an upload (0-5000)
        failure_rate: Probability of answering an upload with a 503 (0.0-1.0)
    """

    host: str = Field(default="127.0.0.1", description="Bind address")
    port: int = Field(default=8090, description="HTTP port")
    storage_dir: str = Field(default="mocks/uploads", description="Upload storage directory")
    log_level: str = Field(default="INFO", description="Logging level")
    log_path: str = Field(
        default="mocks/logs/mock-server.log", description="Log file path"
    )
    required_token: Optional[str] = Field(
        default=None, description="Bearer token required on uploads"
    )
    allowed_folders: list[str] = Field(
        default_factory=list, description="Accepted destination folder ids"
    )
    response_delay_ms: int = Field(
        default=0, ge=0, le=5000, description="Response delay in milliseconds"
    )
    failure_rate: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Probability of a 503 response"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Invalid port {v}. Must be between 1 and 65535.")
        return v


def load_config(config_file: Optional[Path] = None) -> MockServerConfig:
    """Load mock server configuration from file and environment variables.

    Environment variables use the MOCK_SERVER_ prefix followed by the field
    name in upper case (MOCK_SERVER_PORT, MOCK_SERVER_STORAGE_DIR, ...).

    Args:
        config_file: Path to configuration JSON file. Defaults to mocks/config.json

    Returns:
        MockServerConfig instance with merged configuration

    Raises:
        FileNotFoundError: If config file specified but not found
        ValueError: If configuration is invalid
    """
    if config_file is None:
        config_file = DEFAULT_MOCK_CONFIG_PATH

    config_data = {}
    if config_file.exists():
        try:
            with open(config_file) as f:
                config_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Failed to parse configuration file '{config_file}': {e}. "
                f"Ensure the file contains valid JSON."
            ) from e
    elif config_file != DEFAULT_MOCK_CONFIG_PATH:
        raise FileNotFoundError(
            f"Configuration file not found: '{config_file}'. "
            f"Ensure the file exists or check the path."
        )

    env_prefix = "MOCK_SERVER_"
    for key in MockServerConfig.model_fields:
        env_key = f"{env_prefix}{key.upper()}"
        if env_key not in os.environ:
            continue
        value = os.environ[env_key]
        if key == "allowed_folders":
            config_data[key] = [item.strip() for item in value.split(",") if item.strip()]
        else:
            config_data[key] = value

    try:
        return MockServerConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}") from e
