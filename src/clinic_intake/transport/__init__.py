"""Transport module.

This module provides the pooled HTTP session and the file upload client.
"""

from clinic_intake.transport.drive_client import (
    DriveUploader,
    StaticTokenProvider,
    TokenProvider,
)
from clinic_intake.transport.http_client import ConnectionPool, ConnectionPoolConfig

__all__ = [
    "ConnectionPool",
    "ConnectionPoolConfig",
    "DriveUploader",
    "StaticTokenProvider",
    "TokenProvider",
]
