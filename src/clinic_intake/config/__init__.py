"""Config module.

This module provides configuration management functionality.
"""

from clinic_intake.config.manager import (
    get_datastore_config,
    get_drive_config,
    get_logging_config,
    get_operation_logging_config,
    get_transport_config,
    load_config,
)
from clinic_intake.config.schema import (
    Config,
    DataStoreConfig,
    DriveConfig,
    LoggingConfig,
    OperationLoggingConfig,
    OutputConfig,
    TemplateConfig,
    TransportConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    # Helper functions
    "get_drive_config",
    "get_datastore_config",
    "get_transport_config",
    "get_logging_config",
    "get_operation_logging_config",
    # Configuration models
    "Config",
    "TemplateConfig",
    "OutputConfig",
    "DriveConfig",
    "DataStoreConfig",
    "TransportConfig",
    "LoggingConfig",
    "OperationLoggingConfig",
]
