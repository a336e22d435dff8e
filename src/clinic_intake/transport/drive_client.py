"""Client for the file upload service (Google Drive multipart upload).

Uploads a finished form into a shared folder in one multipart/related
request: a JSON metadata part naming the file and its parent folder,
followed by the raw file bytes.
"""

import json
import os
import time
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import requests

from clinic_intake.config.schema import DriveConfig, TransportConfig
from clinic_intake.logging_audit import (
    get_operation_logger,
    log_audit_event,
    log_http_exchange,
)
from clinic_intake.models.results import UploadResult
from clinic_intake.transport.http_client import ConnectionPool, ConnectionPoolConfig
from clinic_intake.utils.exceptions import (
    ConfigurationError,
    UploadError,
    UploadFailureReason,
)

logger = get_operation_logger("upload")

FILE_MIME_TYPE = "application/octet-stream"


class TokenProvider(ABC):
    """Supplies bearer tokens for the upload service.

    Minting tokens (service account JWT exchange) is outside this package;
    implementations wrap whatever produces them.
    """

    @abstractmethod
    def get_token(self) -> str:
        """Return a valid access token.

        Raises:
            ConfigurationError: If no token is available
        """


class StaticTokenProvider(TokenProvider):
    """Token given explicitly or read from an environment variable.

    Args:
        token: Explicit token; takes precedence over the environment
        env_var: Environment variable to read when no token is given
    """

    def __init__(
        self,
        token: Optional[str] = None,
        env_var: str = "CLINIC_INTAKE_DRIVE_TOKEN",
    ) -> None:
        self._token = token
        self.env_var = env_var

    def get_token(self) -> str:
        token = self._token or os.getenv(self.env_var)
        if not token:
            raise ConfigurationError(
                f"No access token available. Set the {self.env_var} environment "
                f"variable or pass --token."
            )
        return token


def build_multipart_body(
    content: bytes, filename: str, folder_id: str, boundary: str
) -> bytes:
    """Build a multipart/related body with metadata and file parts."""
    metadata = json.dumps({"name": filename, "parents": [folder_id]})
    return b"".join(
        [
            f"--{boundary}\r\n".encode(),
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            metadata.encode("utf-8"),
            b"\r\n",
            f"--{boundary}\r\n".encode(),
            f"Content-Type: {FILE_MIME_TYPE}\r\n\r\n".encode(),
            content,
            b"\r\n",
            f"--{boundary}--\r\n".encode(),
        ]
    )


class DriveUploader:
    """Uploads files to a shared drive folder.

    Args:
        config: Upload service configuration
        token_provider: Source of bearer tokens
        session: HTTP session; a pooled session is created when omitted
        transport: Timeouts and retry settings

    Example:
        >>> uploader = DriveUploader(config.drive, StaticTokenProvider())
        >>> result = uploader.upload(pdf_bytes, "ClinicForm.pdf", "folder123")
        >>> result.file_id
        '1AbC...'
    """

    def __init__(
        self,
        config: DriveConfig,
        token_provider: TokenProvider,
        session: Optional[requests.Session] = None,
        transport: Optional[TransportConfig] = None,
    ) -> None:
        self.config = config
        self.token_provider = token_provider
        self.transport = transport or TransportConfig()
        self._pool: Optional[ConnectionPool] = None
        if session is None:
            self._pool = ConnectionPool(
                ConnectionPoolConfig.from_transport_config(self.transport)
            )
            session = self._pool.get_session()
        self.session = session

    def upload(
        self, content: bytes, filename: str, folder_id: Optional[str] = None
    ) -> UploadResult:
        """Upload file content into a folder.

        Args:
            content: File bytes
            filename: Name given to the uploaded file
            folder_id: Destination folder; defaults to config.folder_id

        Returns:
            UploadResult with the id assigned by the service

        Raises:
            UploadError: DATA_UNAVAILABLE for empty content,
                INVALID_DESTINATION for a missing folder or bad URL,
                UPLOAD_REJECTED when the service returns an error,
                MALFORMED_RESPONSE when no file id comes back
            requests.ConnectionError: If the service cannot be reached
            requests.Timeout: If the service does not answer in time
        """
        folder_id = folder_id or self.config.folder_id
        start_time = time.time()

        try:
            result = self._upload(content, filename, folder_id, start_time)
        except UploadError as e:
            log_audit_event(
                "FORM_UPLOADED",
                {
                    "status": "failure",
                    "duration": time.time() - start_time,
                    "filename": filename,
                    "reason": e.reason.value,
                    "error_message": str(e),
                },
            )
            raise

        log_audit_event(
            "FORM_UPLOADED",
            {
                "status": "success",
                "duration": time.time() - start_time,
                "filename": filename,
                "file_id": result.file_id,
                "size_bytes": result.size_bytes,
            },
        )
        return result

    def _upload(
        self,
        content: bytes,
        filename: str,
        folder_id: Optional[str],
        start_time: float,
    ) -> UploadResult:
        if not content:
            raise UploadError(
                f"No data to upload for {filename}",
                UploadFailureReason.DATA_UNAVAILABLE,
            )
        if not folder_id:
            raise UploadError(
                "No destination folder id configured",
                UploadFailureReason.INVALID_DESTINATION,
            )
        parsed = urlparse(self.config.upload_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise UploadError(
                f"Invalid upload URL: {self.config.upload_url}",
                UploadFailureReason.INVALID_DESTINATION,
            )

        boundary = f"Boundary-{uuid.uuid4()}"
        body = build_multipart_body(content, filename, folder_id, boundary)
        headers = {
            "Authorization": f"Bearer {self.token_provider.get_token()}",
            "Content-Type": f"multipart/related; boundary={boundary}",
        }

        logger.info(f"Uploading {filename} ({len(content)} bytes) to folder {folder_id}")
        try:
            response = self.session.post(
                self.config.upload_url,
                data=body,
                headers=headers,
                timeout=(self.transport.timeout_connect, self.transport.timeout_read),
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.error(f"Upload of {filename} failed: {type(e).__name__}: {e}")
            raise

        log_http_exchange(
            "DRIVE_UPLOAD",
            f"POST {filename} ({len(content)} bytes)",
            response.text,
            response.status_code,
        )

        file_id = self._extract_file_id(response)
        return UploadResult(
            file_id=file_id,
            filename=filename,
            folder_id=folder_id,
            size_bytes=len(content),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )

    @staticmethod
    def _extract_file_id(response: requests.Response) -> str:
        try:
            payload: Any = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            error = payload["error"]
            raise UploadError(
                f"Upload rejected ({response.status_code}): "
                f"{error.get('message', error)}",
                UploadFailureReason.UPLOAD_REJECTED,
                status_code=response.status_code,
            )

        if response.status_code >= 400:
            raise UploadError(
                f"Upload rejected with HTTP {response.status_code}",
                UploadFailureReason.UPLOAD_REJECTED,
                status_code=response.status_code,
            )

        if not isinstance(payload, dict) or not isinstance(payload.get("id"), str):
            raise UploadError(
                "Upload response did not contain a file id",
                UploadFailureReason.MALFORMED_RESPONSE,
                status_code=response.status_code,
            )

        return payload["id"]

    def upload_file(self, file_path: Path, folder_id: Optional[str] = None) -> UploadResult:
        """Read a file and upload it under its own name.

        Raises:
            UploadError: DATA_UNAVAILABLE if the file cannot be read, plus the
                failures of upload()
        """
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise UploadError(
                f"Cannot read {file_path}: {e}",
                UploadFailureReason.DATA_UNAVAILABLE,
            ) from e
        return self.upload(content, file_path.name, folder_id)

    def close(self) -> None:
        """Close the pooled session if this uploader created it."""
        if self._pool is not None:
            self._pool.close()
