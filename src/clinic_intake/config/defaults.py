"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Used as a fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "templates": {
        "template_path": "templates/intake-form.pdf",
        # Selects the signature placement table
        "template_version": "intake-v1",
    },
    "output": {
        "output_dir": "output",
        "filename_prefix": "ClinicForm",
        "keep_local_copy": True,
    },
    "drive": {
        "upload_url": (
            "https://www.googleapis.com/upload/drive/v3/files"
            "?uploadType=multipart&fields=id&supportsAllDrives=true"
        ),
        # No default folder - must be provided by user
        "folder_id": None,
        "token_env_var": "CLINIC_INTAKE_DRIVE_TOKEN",
    },
    "datastore": {
        "backend": "json",
        "json_path": "data/clinic-store.json",
        "credentials_path": None,
        "project_id": None,
    },
    "transport": {
        "verify_tls": True,
        "timeout_connect": 10,
        "timeout_read": 30,
        "max_retries": 3,
        "backoff_factor": 1.0,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/clinic-intake.log",
        # Patient data is redacted unless the user opts out
        "redact_pii": True,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
